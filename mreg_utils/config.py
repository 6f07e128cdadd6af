"""
Regression configuration constants
"""

# Default response variable for the regression page
DEFAULT_RESPONSE = "body_mass_g"

# Stepwise selection
DEFAULT_CRITERION = "aic"
CRITERIA = ("aic", "bic")
STEPWISE_DIRECTIONS = ("both", "forward", "backward")
DEFAULT_DIRECTION = "both"
MAX_STEPWISE_STEPS = 100
# A move must lower the criterion by more than this to be accepted
STEPWISE_TOLERANCE = 1e-7

# Diagnostics
VIF_THRESHOLD = 5.0
NORMALITY_ALPHA = 0.05
SHAPIRO_MAX_N = 5000
DW_LOWER = 1.5
DW_UPPER = 2.5
LARGE_RESIDUAL_THRESHOLD = 2.0
CONFIDENCE_LEVEL = 0.95

# Report card: sample size regarded as large enough for a precise R-squared
MIN_PRECISE_N = 50
# Below this the residual normality assumption matters for the p-values
MIN_NORMALITY_N = 15
