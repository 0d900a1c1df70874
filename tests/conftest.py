import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from dementia_analysis import DataCleaner, DataLoader

RAW_COLUMNS = [
    'Subject ID', 'MRI ID', 'Group', 'Visit', 'MR Delay', 'M/F', 'Hand',
    'Age', 'EDUC', 'SES', 'MMSE', 'CDR', 'eTIV', 'nWBV', 'ASF'
]


def make_oasis_frame(n_subjects=160, seed=0):
    """Synthetic longitudinal MRI table with the raw OASIS headers"""
    rng = np.random.default_rng(seed)
    rows = []
    
    for i in range(n_subjects):
        # fixed class mix: 55% CDR 0, 30% CDR 0.5, 10% CDR 1, 5% CDR 2
        slot = i % 20
        if slot < 11:
            cdr = 0.0
        elif slot < 17:
            cdr = 0.5
        elif slot < 19:
            cdr = 1.0
        else:
            cdr = 2.0
        
        if cdr == 0.0:
            group = 'Converted' if slot == 10 else 'Nondemented'
        else:
            group = 'Demented'
        
        sex = 'M' if rng.random() < 0.45 else 'F'
        base_age = rng.normal(72 + 4 * cdr, 6)
        educ = int(np.clip(rng.normal(15 - 2 * cdr, 2.5), 6, 23))
        ses = int(rng.integers(1, 6))
        etiv = rng.normal(1580 if sex == 'M' else 1420, 120)
        n_visits = int(rng.integers(2, 5))
        delay = 0
        
        for visit in range(1, n_visits + 1):
            if visit > 1:
                delay += int(rng.integers(400, 900))
            age = base_age + delay / 365.25
            mmse = int(np.clip(rng.normal(29 - 5 * cdr, 1.5), 0, 30))
            nwbv = rng.normal(0.76 - 0.03 * cdr - 0.002 * (age - 72), 0.015)
            rows.append({
                'Subject ID': f'OAS2_{i + 1:04d}',
                'MRI ID': f'OAS2_{i + 1:04d}_MR{visit}',
                'Group': group,
                'Visit': visit,
                'MR Delay': delay,
                'M/F': sex,
                'Hand': 'R',
                'Age': int(age),
                'EDUC': educ,
                'SES': float(ses),
                'MMSE': float(mmse),
                'CDR': cdr,
                'eTIV': int(etiv),
                'nWBV': round(nwbv, 3),
                'ASF': round(1755 / etiv, 3),
            })
    
    df = pd.DataFrame(rows, columns=RAW_COLUMNS)
    
    # missing SES / MMSE only among CDR 0 visits
    healthy = df.index[df['CDR'] == 0.0]
    df.loc[healthy[:8], 'SES'] = np.nan
    df.loc[healthy[20:23], 'MMSE'] = np.nan
    df.loc[healthy[5], 'MMSE'] = np.nan
    return df


@pytest.fixture
def raw_frame():
    return make_oasis_frame()


@pytest.fixture
def raw_csv(tmp_path, raw_frame):
    path = tmp_path / 'oasis_longitudinal.csv'
    raw_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def raw_df(raw_csv):
    return DataLoader(raw_csv).load_data()


@pytest.fixture
def clean_df(raw_df):
    return DataCleaner().clean_dataset(raw_df)
