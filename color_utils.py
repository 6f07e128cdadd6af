"""
Unified Color Mapping System for Penguin Analytics
Light theme only - simplified color system
"""

import pandas as pd

# Conventional Palmer penguins palette
SPECIES_COLORS = {
    'Adelie': 'darkorange',
    'Chinstrap': 'purple',
    'Gentoo': '#008b8b',
}

CATEGORICAL_COLORS = [
    'royalblue', 'crimson', 'seagreen', 'darkorange', 'purple', 'saddlebrown',
    'hotpink', 'gray', 'olive', 'teal', 'gold', 'navy', 'darkred', 'indigo',
    'coral', 'chocolate', 'darkviolet', 'darkslategray'
]


def _category_sort_key(value):
    # Cluster labels "1".."k" sort as numbers
    if value.isdigit():
        return (0, int(value), value)
    return (1, 0, value)


def create_categorical_color_map(unique_values):
    """
    Create a color mapping for categorical variables

    Known species names keep their conventional colors; anything else gets
    the next color of the categorical palette. Purely numeric labels are
    ordered numerically, so cluster "10" follows cluster "9".

    Args:
        unique_values (iterable): Unique categorical values

    Returns:
        dict: Mapping of values to colors, in display order
    """
    color_discrete_map = {}
    values = sorted(pd.Series(list(unique_values)).dropna().astype(str).unique(),
                    key=_category_sort_key)
    for i, val in enumerate(values):
        if val in SPECIES_COLORS:
            color_discrete_map[val] = SPECIES_COLORS[val]
        elif i < len(CATEGORICAL_COLORS):
            color_discrete_map[val] = CATEGORICAL_COLORS[i]
        else:
            # Generate additional colors using HSL
            color_discrete_map[val] = f'hsl({(i * 137) % 360}, 70%, 50%)'

    return color_discrete_map
