"""
Configuration for the longitudinal dementia analysis

Column exclusions below were chosen by inspection of the dataset, not by a
statistical criterion. Change them here rather than in the analysis code.
"""

from pathlib import Path

# Paths
DATA_PATH = Path("data") / "oasis_longitudinal.csv"
RESULTS_DIR = Path("results") / "experiment_01"

# Schema (normalized column names)
DROP_COLUMNS = ['hand']  # every subject is right-handed

REQUIRED_COLUMNS = [
    'subject_id', 'mri_id', 'group', 'visit', 'mr_delay', 'm_f',
    'age', 'educ', 'ses', 'mmse', 'cdr', 'e_tiv', 'n_wbv', 'asf'
]

# Rows missing any of these are excluded before analysis
MISSING_FILTER_COLUMNS = ['ses', 'mmse']

TARGET = 'cdr'
CDR_LEVELS = [0.0, 0.5, 1.0, 2.0]

# Predictors
PCA_FEATURES = ['age', 'educ', 'ses', 'mmse', 'e_tiv', 'n_wbv']
LDA_FEATURES = list(PCA_FEATURES)
RF_FEATURES = LDA_FEATURES + ['m_f']

# Left out of PCA and LDA
EXCLUDED_FEATURES = {
    'subject_id': 'identifier',
    'mri_id': 'identifier',
    'visit': 'visit sequence, not a subject attribute',
    'mr_delay': 'visit timing, not a subject attribute',
    'group': 'diagnostic label, redundant with cdr',
    'm_f': 'categorical',
    'asf': 'collinear with e_tiv',
    'cdr': 'classification target',
}

# Descriptive reporting
SEX_COMPARISON_COLUMNS = ['age', 'mmse', 'e_tiv', 'n_wbv']
PAIRPLOT_COLUMNS = ['age', 'educ', 'ses', 'mmse', 'e_tiv', 'n_wbv', 'asf', 'm_f', 'cdr']

# Model settings
TRAIN_FRACTION = 0.75
N_TREES = 200
MTRY = 3  # candidate predictors per split
RANDOM_STATE = 42
CONFIDENCE_LEVEL = 0.95
PCA_VARIANCE_THRESHOLD = 0.75
