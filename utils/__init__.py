"""
Shared helpers for the model selection toolkit.

Enables pandas Copy-on-Write globally so the result tables built from
evaluation histories do not duplicate data on every column access.
"""

import pandas as pd

pd.options.mode.copy_on_write = True
