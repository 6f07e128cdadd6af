"""
PCA and clustering configuration constants
"""

# K-means is run with a fixed cluster count (one per expected species)
# and a fixed seed so every rerun yields the same assignment.
DEFAULT_N_CLUSTERS = 3
RANDOM_SEED = 123
KMEANS_N_INIT = 25

# Z-score the measurements before PCA / k-means
DEFAULT_SCALE = True

# Components shown in the 3D cluster plot
N_COMPONENTS_3D = 3

# Reference lines (%) on the cumulative variance plot
CUMULATIVE_REFERENCE_LINES = (80, 95)

# Range of k shown in the elbow plot
ELBOW_K_RANGE = range(1, 9)
