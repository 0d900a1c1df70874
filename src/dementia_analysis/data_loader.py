"""
Data loading utilities for the longitudinal MRI dementia dataset
"""

import re

import pandas as pd

from .config import DATA_PATH, DROP_COLUMNS, REQUIRED_COLUMNS
from .exceptions import SchemaError


class DataLoader:
    """Handles loading and initial exploration of the visit-level CSV"""
    
    def __init__(self, data_path=DATA_PATH, drop_columns=None):
        self.data_path = data_path
        self.drop_columns = list(DROP_COLUMNS if drop_columns is None else drop_columns)
        self.df = None
    
    @staticmethod
    def normalize_column_name(name):
        """
        Convert a raw header to lowercase_with_underscores
        e.g. 'Subject ID' -> 'subject_id', 'M/F' -> 'm_f', 'nWBV' -> 'n_wbv'
        """
        name = str(name).strip()
        # Split camel-case humps: eTIV -> e_TIV
        name = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name)
        name = re.sub(r'[^0-9A-Za-z]+', '_', name)
        return name.strip('_').lower()
    
    def load_data(self):
        """Read the CSV, normalize headers, drop uninformative columns and check the schema"""
        print(f"Loading {self.data_path}...")
        
        # FileNotFoundError / ParserError propagate to the caller
        df = pd.read_csv(self.data_path)
        print(f"Raw shape: {df.shape}")
        
        df.columns = [self.normalize_column_name(col) for col in df.columns]
        
        dropped = [col for col in self.drop_columns if col in df.columns]
        df = df.drop(columns=dropped)
        if dropped:
            print(f"Dropped columns: {dropped}")
        
        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise SchemaError(f"{self.data_path}: missing expected columns {missing}")
        
        df['subject_id'] = df['subject_id'].astype(str).str.strip()
        df['mri_id'] = df['mri_id'].astype(str).str.strip()
        sex = df['m_f']
        df['m_f'] = sex.astype(str).str.strip().str.upper().where(sex.notna())
        
        print(f"Loaded {len(df)} visits from {df['subject_id'].nunique()} subjects")
        self.df = df
        return df
    
    def explore_structure(self, df=None):
        """Print and return the basic structure of the loaded table"""
        if df is None:
            df = self.df if self.df is not None else self.load_data()
        
        print("=== Dataset Structure ===")
        print(f"Shape: {df.shape}")
        print("\nColumn types:")
        print(df.dtypes)
        print("\nFirst 5 rows:")
        print(df.head())
        
        missing = df.isnull().sum()
        print("\nMissing values per column:")
        print(missing[missing > 0] if missing.any() else "none")

        # every subject is expected to have at least two visits
        visits = df.groupby('subject_id').size()
        single_visit = int((visits < 2).sum())
        print(f"\nSubjects with a single visit: {single_visit}")

        return {
            'shape': df.shape,
            'columns': list(df.columns),
            'missing': missing.to_dict(),
            'single_visit_subjects': single_visit
        }
