"""
Shared fixtures for the Penguin Analytics tests.
"""

import numpy as np
import pandas as pd
import pytest

from utils.data_loaders import load_clean_penguins


SPECIES_MEANS = {
    # bill_length, bill_depth, flipper_length, body_mass
    "Adelie": (38.8, 18.3, 190.0, 3700.0),
    "Chinstrap": (48.8, 18.4, 196.0, 3733.0),
    "Gentoo": (47.5, 15.0, 217.0, 5076.0),
}
ISLANDS = {"Adelie": "Torgersen", "Chinstrap": "Dream", "Gentoo": "Biscoe"}


def make_penguins(n_per_species=20, seed=0):
    """Small synthetic table with the penguin schema and well separated species."""
    rng = np.random.default_rng(seed)
    frames = []
    for species, (bl, bd, fl, bm) in SPECIES_MEANS.items():
        n = n_per_species
        frames.append(pd.DataFrame({
            "species": [species] * n,
            "island": [ISLANDS[species]] * n,
            "bill_length_mm": rng.normal(bl, 1.5, n),
            "bill_depth_mm": rng.normal(bd, 0.6, n),
            "flipper_length_mm": rng.normal(fl, 4.0, n),
            "body_mass_g": rng.normal(bm, 250.0, n),
            "sex": rng.choice(["male", "female"], n),
            "year": rng.choice([2007, 2008, 2009], n),
        }))
    data = pd.concat(frames, ignore_index=True)
    data["species"] = data["species"].astype(object)
    data["island"] = data["island"].astype(object)
    data["sex"] = data["sex"].astype(object)
    return data


@pytest.fixture
def penguins():
    """Synthetic penguins without missing values."""
    return make_penguins()


@pytest.fixture
def penguins_with_missing():
    """Synthetic penguins with a few injected missing values."""
    data = make_penguins()
    data.loc[[0, 5], "bill_length_mm"] = np.nan
    data.loc[[3], "body_mass_g"] = np.nan
    data.loc[[1, 2, 40], "sex"] = np.nan
    return data


@pytest.fixture(scope="session")
def clean_penguins():
    """The bundled Palmer penguins dataset after imputation."""
    return load_clean_penguins()
