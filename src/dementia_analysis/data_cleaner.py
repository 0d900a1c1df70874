"""
Data cleaning utilities for the longitudinal MRI dementia dataset
"""

import numpy as np
import pandas as pd

from .config import CDR_LEVELS, MISSING_FILTER_COLUMNS


class DataCleaner:
    """Row filtering and type coercion; no imputation"""
    
    def __init__(self, missing_columns=None, cdr_levels=None):
        self.missing_columns = list(MISSING_FILTER_COLUMNS if missing_columns is None else missing_columns)
        self.cdr_levels = list(CDR_LEVELS if cdr_levels is None else cdr_levels)
        self.n_dropped = None
    
    def drop_missing(self, df):
        """
        Split rows into those complete in the filter columns and those that are not
        Returns tuple: (clean_df, dropped_df)
        """
        mask = df[self.missing_columns].notna().all(axis=1)
        return df[mask].copy(), df[~mask].copy()
    
    def encode_cdr(self, df):
        """Convert cdr to an ordered categorical with fixed levels"""
        df = df.copy()
        values = pd.to_numeric(df['cdr'], errors='coerce')
        
        unknown = values[values.notna() & ~values.isin(self.cdr_levels)]
        if len(unknown) > 0:
            raise ValueError(f"cdr values outside {self.cdr_levels}: {sorted(unknown.unique())}")
        
        df['cdr'] = pd.Categorical(values, categories=self.cdr_levels, ordered=True)
        return df
    
    def clean_dataset(self, df):
        """Drop incomplete rows and encode the target; the input frame is left untouched"""
        print("=== Data Cleaning ===")
        
        df_clean, df_dropped = self.drop_missing(df)
        self.n_dropped = len(df_dropped)
        
        for col in self.missing_columns:
            print(f"Rows missing {col}: {df[col].isnull().sum()}")
        print(f"Dropped {self.n_dropped} rows, kept {len(df_clean)} of {len(df)}")
        
        df_clean = self.encode_cdr(df_clean)
        
        print(f"Cleaned dataset: {len(df_clean)} visits, {df_clean['subject_id'].nunique()} subjects")
        return df_clean
    
    def generate_quality_report(self, df_raw, df_clean):
        """Generate data quality report comparing raw and cleaned tables"""
        report = []
        report.append("=== DATA QUALITY REPORT ===\n")
        
        n_dropped = len(df_raw) - len(df_clean)
        report.append(f"Rows before cleaning: {len(df_raw)}")
        report.append(f"Rows after cleaning: {len(df_clean)}")
        report.append(f"Rows dropped: {n_dropped} ({n_dropped / len(df_raw) * 100:.1f}%)")
        
        report.append("\n=== MISSING DATA (BEFORE CLEANING) ===")
        for col in df_raw.columns:
            missing_count = df_raw[col].isnull().sum()
            if missing_count > 0:
                missing_pct = (missing_count / len(df_raw)) * 100
                report.append(f"{col}: {missing_count} missing ({missing_pct:.1f}%)")
        
        report.append("\n=== CDR DISTRIBUTION ===")
        for level, count in df_clean['cdr'].value_counts(sort=False).items():
            report.append(f"  {level}: {count}")
        
        report.append("\n=== GROUP DISTRIBUTION ===")
        for group, count in df_clean['group'].value_counts().items():
            report.append(f"  {group}: {count}")
        
        remaining = int(np.sum(df_clean[self.missing_columns].isnull().values))
        report.append(f"\nMissing values left in {self.missing_columns}: {remaining}")
        
        return '\n'.join(report)
