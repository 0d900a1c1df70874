import numpy as np
import pandas as pd
import pytest

from dementia_analysis import (
    DegenerateInputError, MLAnalyzer, StatisticalAnalyzer, StratificationError
)
from dementia_analysis.analyzer import encode_sex
from dementia_analysis.config import LDA_FEATURES, PCA_FEATURES, RF_FEATURES


# Descriptive statistics

def test_visit_counts_sum_to_subjects(clean_df):
    visits = StatisticalAnalyzer(clean_df).visit_counts()
    distribution = visits['distribution']
    
    assert distribution['n_subjects'].sum() == clean_df['subject_id'].nunique()
    assert (distribution['n_visits'] * distribution['n_subjects']).sum() == len(clean_df)
    assert distribution['n_visits'].is_monotonic_increasing


def test_visit_counts_two_and_three_visits():
    subjects = [f'S{i}' for i in range(100) for _ in range(2)]
    subjects += [f'T{i}' for i in range(50) for _ in range(3)]
    df = pd.DataFrame({'subject_id': subjects})
    
    distribution = StatisticalAnalyzer(df).visit_counts()['distribution']
    
    assert distribution['n_visits'].tolist() == [2, 3]
    assert distribution['n_subjects'].tolist() == [100, 50]
    assert distribution['n_subjects'].sum() == 150


def test_sex_comparison(clean_df):
    result = StatisticalAnalyzer(clean_df).sex_comparison()
    
    assert set(result['means'].index) == {'F', 'M'}
    assert list(result['means'].columns) == ['age', 'mmse', 'e_tiv', 'n_wbv']
    expected = clean_df[clean_df['m_f'] == 'M']['e_tiv'].mean()
    assert result['means'].loc['M', 'e_tiv'] == pytest.approx(expected)
    assert len(result['ttests']) == 4
    assert result['ttests']['p'].between(0, 1).all()


def test_group_cdr_association(clean_df):
    result = StatisticalAnalyzer(clean_df).group_cdr_association()
    crosstab = result['crosstab']
    
    assert crosstab.loc['All', 'All'] == len(clean_df)
    assert result['chi2'][1] < 0.05


def test_summary_and_correlation(clean_df):
    analyzer = StatisticalAnalyzer(clean_df)
    summary = analyzer.summary_statistics()
    corr = analyzer.correlation_matrix(['age', 'mmse', 'n_wbv', 'm_f', 'cdr'])
    
    assert summary.loc['count', 'age'] == len(clean_df)
    assert corr.shape == (5, 5)
    assert np.allclose(np.diag(corr.values), 1.0)
    assert corr.loc['mmse', 'cdr'] < 0


# PCA

def test_pca_explained_variance(clean_df):
    result = MLAnalyzer(clean_df).run_pca()
    explained = result['explained_variance_ratio'].values
    
    assert len(explained) == len(PCA_FEATURES)
    assert (explained >= 0).all()
    assert explained.sum() == pytest.approx(1.0)
    assert (np.diff(explained) <= 1e-12).all()
    assert result['cumulative_variance'].iloc[-1] == pytest.approx(1.0)


def test_pca_scores_and_loadings(clean_df):
    result = MLAnalyzer(clean_df).run_pca()
    scores = result['scores']
    
    assert scores.shape == (len(clean_df), len(PCA_FEATURES))
    assert scores.index.equals(clean_df.index)
    # components are uncorrelated
    corr = np.corrcoef(scores.values, rowvar=False)
    assert np.allclose(corr - np.diag(np.diag(corr)), 0, atol=1e-8)
    assert list(result['loadings'].index) == PCA_FEATURES
    threshold = result['n_components_for_threshold']
    assert result['cumulative_variance'].iloc[threshold - 1] >= 0.75


def test_pca_zero_variance_column(clean_df):
    df = clean_df.copy()
    df['ses'] = 3.0
    with pytest.raises(DegenerateInputError, match='ses'):
        MLAnalyzer(df).run_pca()


def test_pca_collinear_columns(clean_df):
    df = clean_df.copy()
    df['educ'] = 2 * df['age'] + 1
    with pytest.raises(DegenerateInputError, match='collinear'):
        MLAnalyzer(df).run_pca()


def test_missing_predictor_rejected(raw_df):
    with pytest.raises(ValueError, match='Missing values'):
        MLAnalyzer(raw_df).run_pca()


# Partitioning

def test_split_is_stratified(clean_df):
    analyzer = MLAnalyzer(clean_df)
    X_train, X_test, y_train, y_test = analyzer.split_data(LDA_FEATURES)
    
    assert len(X_train) + len(X_test) == len(clean_df)
    assert len(X_train) == pytest.approx(0.75 * len(clean_df), abs=1)
    
    full = clean_df['cdr'].value_counts(normalize=True)
    for part in (y_train, y_test):
        proportions = part.value_counts(normalize=True)
        for label, share in full.items():
            assert abs(proportions[f"{label:g}"] - share) < 0.03


def test_split_is_deterministic(clean_df):
    first = MLAnalyzer(clean_df, random_state=7).split_data(LDA_FEATURES)
    second = MLAnalyzer(clean_df, random_state=7).split_data(LDA_FEATURES)
    
    assert first[0].index.equals(second[0].index)
    assert first[1].index.equals(second[1].index)


def test_split_singleton_class(clean_df):
    single = clean_df[clean_df['cdr'] == 2.0].iloc[:1]
    df = pd.concat([clean_df[clean_df['cdr'] != 2.0], single])
    with pytest.raises(StratificationError):
        MLAnalyzer(df).split_data(LDA_FEATURES)


# LDA

def test_lda_held_out_evaluation(clean_df):
    result = MLAnalyzer(clean_df).train_lda()
    evaluation = result['evaluation']
    cm = evaluation['confusion_matrix']
    
    n_test = len(result['y_test'])
    assert cm.values.sum() == n_test
    assert cm.sum(axis=1).tolist() == [
        int((np.asarray(result['y_test']) == label).sum()) for label in cm.index
    ]
    assert cm.sum(axis=0).tolist() == [int((result['y_pred'] == label).sum()) for label in cm.columns]
    assert evaluation['accuracy'] == pytest.approx(np.trace(cm.values) / n_test)
    assert evaluation['accuracy'] > evaluation['no_information_rate']


def test_lda_model_summary(clean_df):
    result = MLAnalyzer(clean_df).train_lda()
    
    assert list(result['priors'].index) == ['0', '0.5', '1', '2']
    assert result['priors'].sum() == pytest.approx(1.0)
    assert list(result['coefficients'].index) == LDA_FEATURES
    assert result['coefficients'].shape[1] == 3
    assert {'LD1', 'LD2', 'cdr'} <= set(result['scores'].columns)


def test_lda_deterministic(clean_df):
    first = MLAnalyzer(clean_df, random_state=3).train_lda()
    second = MLAnalyzer(clean_df, random_state=3).train_lda()
    pd.testing.assert_frame_equal(
        first['evaluation']['confusion_matrix'], second['evaluation']['confusion_matrix']
    )


def test_lda_resubstitution_is_flagged(clean_df):
    result = MLAnalyzer(clean_df).lda_resubstitution()
    
    assert result['optimistic'] is True
    assert result['evaluation']['n'] == len(clean_df)


# Random forest

def test_random_forest(clean_df):
    result = MLAnalyzer(clean_df).train_random_forest(n_estimators=100)
    
    assert 0 <= result['oob_error'] <= 1
    assert result['model'].n_estimators == 100
    assert result['model'].max_features == 3
    
    importance = result['importance']
    assert set(importance['feature']) == set(RF_FEATURES)
    assert importance['mean_decrease_gini'].sum() == pytest.approx(1.0)
    assert importance['mean_decrease_accuracy'].is_monotonic_decreasing
    
    evaluation = result['evaluation']
    assert evaluation['confusion_matrix'].values.sum() == len(result['y_test'])
    assert 'class_error' in result['oob_confusion'].columns


def test_random_forest_deterministic(clean_df):
    first = MLAnalyzer(clean_df, random_state=11).train_random_forest(n_estimators=50)
    second = MLAnalyzer(clean_df, random_state=11).train_random_forest(n_estimators=50)
    
    pd.testing.assert_frame_equal(
        first['evaluation']['confusion_matrix'], second['evaluation']['confusion_matrix']
    )
    assert first['oob_error'] == second['oob_error']


def test_oob_error_curve(clean_df):
    curve = MLAnalyzer(clean_df).oob_error_curve(tree_grid=[20, 40, 60])
    
    assert curve['n_trees'].tolist() == [20, 40, 60]
    assert curve['oob_error'].between(0, 1).all()


def test_empty_tree_grid_keeps_columns(clean_df):
    curve = MLAnalyzer(clean_df).oob_error_curve(tree_grid=[])
    assert list(curve.columns) == ['n_trees', 'oob_error']
    assert curve.empty


def test_missing_sex_is_not_encoded(clean_df):
    df = clean_df.copy()
    df.loc[df.index[0], 'm_f'] = np.nan
    with pytest.raises(ValueError, match='m_f'):
        MLAnalyzer(df).prepare_features(['age', 'm_f'])


def test_encode_sex():
    coded = encode_sex(['M', 'f ', np.nan])
    assert coded.iloc[0] == 1
    assert coded.iloc[1] == 0
    assert np.isnan(coded.iloc[2])
    with pytest.raises(ValueError, match='Unknown m_f'):
        encode_sex(['M', 'X'])


def test_sex_comparison_reports_skipped_test(clean_df, capsys):
    df = pd.concat([clean_df[clean_df['m_f'] == 'F'], clean_df[clean_df['m_f'] == 'M'].iloc[:1]])
    result = StatisticalAnalyzer(df).sex_comparison()
    
    assert result['ttests'].empty
    assert 'age: t-test skipped (1 M' in capsys.readouterr().out
