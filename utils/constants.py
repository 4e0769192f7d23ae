# utils/constants.py

# --- Result Directories ---
# Sequentially numbered for proper sorting with clear, self-explanatory names

CONFIG_DIR = "01_RunConfiguration"                # Run config, metadata, seeds
SPLITS_DIR = "02_TrainingTestSplit"               # Index partition + balance report
CROSS_VALIDATION_DIR = "03_CrossValidation"       # Out-of-fold predictions
HPO_OPTIMIZATION_DIR = "04_HyperparameterSearch"  # Evaluation history, best config
LEARNING_CURVES_DIR = "05_LearningCurves"         # Curve table + plot
MODEL_COMPARISON_DIR = "06_ModelComparison"       # Ranked model errors

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
SPLIT_INDICES_FILE = "split_indices.parquet"
SPLIT_BALANCE_FILE = "split_balance_report.parquet"
CV_PREDICTIONS_FILE = "cv_predictions.parquet"
ALL_CONFIGURATIONS_FILE = "all_configurations.parquet"
BEST_CONFIGURATION_FILE = "best_configuration.json"
LEARNING_CURVE_FILE = "learning_curve.csv"
LEARNING_CURVE_PLOT_FILE = "learning_curve.png"
MODEL_COMPARISON_FILE = "model_comparison.parquet"

# --- Seed Offsets ---
# Large, non-overlapping offsets from the master seed avoid correlated streams.
SEED_OFFSETS = {
    'split': 0,
    'cv': 1000,
    'optimizer': 2000,
    'learning_curve': 3000,
}

# --- Defaults ---
DEFAULT_SEED = 42
DEFAULT_TRAINING_PERCENTAGE = 0.7
DEFAULT_CV_FOLDS = 5
DEFAULT_RANDOM_SEARCH_POINT_COUNT = 1000
DEFAULT_LEARNING_CURVE_PERCENTAGES = [0.05, 0.1, 0.2, 0.4, 0.8, 1.0]
