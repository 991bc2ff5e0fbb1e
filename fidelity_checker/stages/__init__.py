"""Pipeline stages, leaf-first.

  viewport    raw-size sanity checks and dimension capping
  normalize   put each image onto the comparison canvas
  diff        perceptual pixel diff and similarity score
  regions     connected mismatch regions from the diff mask
  categorize  category, priority and text for each region

Each module's docstring is its documentation (`fidelity-check help <stage>`).
"""

STAGES = ['viewport', 'normalize', 'diff', 'regions', 'categorize']
