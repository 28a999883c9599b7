# --- Default settings for the two-firm equilibrium solver ---

# Numeraire: price of the primary input Z is fixed to this value when the
# equations are built. It is never a free unknown.
NUMERAIRE_PRICE = 1

# Cobb-Douglas expenditure share on good X (the remainder goes to good Y)
EXPENDITURE_SHARE_X = (1, 2)

# Endowment values at which a fallback branch is evaluated numerically
SANITY_CHECK_K = (1, 4, 9)

# Seconds allowed for the algebra engine's solve call (None = unbounded)
SOLVER_TIMEOUT = None

# Endowment grid for comparative statics: (start, stop, num)
K_GRID = (0.5, 10.0, 40)

# Print progress lines from each stage
VERBOSE = False
