"""
Analysis utilities for dementia severity classification
"""

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.decomposition import PCA
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import RandomForestClassifier
from sklearn.inspection import permutation_importance
from sklearn.metrics import confusion_matrix
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import StandardScaler

from .config import (
    LDA_FEATURES, MTRY, N_TREES, PCA_FEATURES, PCA_VARIANCE_THRESHOLD,
    RANDOM_STATE, RF_FEATURES, SEX_COMPARISON_COLUMNS, TARGET, TRAIN_FRACTION
)
from .evaluation import evaluate_classification
from .exceptions import DegenerateInputError, StratificationError


SEX_CODES = {'M': 1, 'F': 0}


def encode_sex(values):
    """M -> 1, F -> 0; missing stays missing, anything else is rejected"""
    values = pd.Series(values)
    coded = values.astype(str).str.strip().str.upper().map(SEX_CODES)

    unknown = values[values.notna() & coded.isna()]
    if len(unknown) > 0:
        raise ValueError(f"Unknown m_f values: {sorted(unknown.astype(str).unique())}")
    return coded.where(values.notna())


class StatisticalAnalyzer:
    """Descriptive statistics; nothing here modifies the data"""
    
    def __init__(self, df):
        self.df = df
    
    def summary_statistics(self):
        """Per-column summary statistics"""
        print("=== SUMMARY STATISTICS ===")
        summary = self.df.describe(include='all')
        print(summary)
        return summary
    
    def visit_counts(self):
        """Count visits per subject and tabulate how many subjects have each visit count"""
        print("\n=== VISITS PER SUBJECT ===")
        
        per_subject = self.df.groupby('subject_id').size()
        distribution = per_subject.value_counts().sort_index()
        distribution = distribution.rename_axis('n_visits').reset_index(name='n_subjects')
        
        print(distribution.to_string(index=False))
        print(f"Total subjects: {distribution['n_subjects'].sum()}")
        
        return {
            'visits_per_subject': per_subject,
            'distribution': distribution
        }
    
    def sex_comparison(self, columns=None):
        """Compare group means by sex with Welch t-tests"""
        print("\n=== COMPARISON BY SEX ===")
        if columns is None:
            columns = SEX_COMPARISON_COLUMNS
        
        means = self.df.groupby('m_f')[columns].mean()
        print(means)
        
        rows = []
        males = self.df[self.df['m_f'] == 'M']
        females = self.df[self.df['m_f'] == 'F']
        for col in columns:
            m_values = males[col].dropna()
            f_values = females[col].dropna()
            if len(m_values) < 2 or len(f_values) < 2:
                print(f"{col}: t-test skipped ({len(m_values)} M, {len(f_values)} F values)")
                continue
            ttest = stats.ttest_ind(m_values, f_values, equal_var=False)
            print(f"{col} (Welch t-test): t={ttest.statistic:.3f}, p={ttest.pvalue:.6f}")
            rows.append({'variable': col, 't': ttest.statistic, 'p': ttest.pvalue})
        
        return {
            'means': means,
            'ttests': pd.DataFrame(rows, columns=['variable', 't', 'p'])
        }
    
    def group_cdr_association(self):
        """Cross-tabulate diagnostic group against CDR with a chi-square test"""
        print("\n=== GROUP vs CDR ===")
        
        # plain floats; margins on a categorical column are unreliable
        cdr = self.df['cdr'].astype(float)

        crosstab = pd.crosstab(self.df['group'], cdr, margins=True)
        print(crosstab)

        table = pd.crosstab(self.df['group'], cdr)
        table = table.loc[table.sum(axis=1) > 0, table.sum(axis=0) > 0]
        chi2 = stats.chi2_contingency(table)
        print(f"Group/CDR association (chi-square): χ²={chi2[0]:.3f}, p={chi2[1]:.6g}")
        
        return {
            'crosstab': crosstab,
            'chi2': chi2
        }
    
    def correlation_matrix(self, columns):
        """Pearson correlations; m_f enters as 0/1 and cdr as its numeric level"""
        frame = self.df[columns].copy()
        if 'm_f' in frame.columns:
            frame['m_f'] = encode_sex(frame['m_f']).values
        if 'cdr' in frame.columns:
            frame['cdr'] = frame['cdr'].astype(float)
        
        corr = frame.corr()
        print("\n=== CORRELATION MATRIX ===")
        print(corr.round(3))
        return corr


class MLAnalyzer:
    """PCA, linear discriminant analysis and random forest on the cleaned table"""
    
    def __init__(self, df, target=TARGET, random_state=RANDOM_STATE):
        self.df = df
        self.target = target
        self.random_state = random_state
        self.labels = None
    
    @staticmethod
    def _label(value):
        if isinstance(value, (int, float, np.integer, np.floating)):
            return f"{value:g}"
        return str(value)
    
    def prepare_features(self, feature_columns):
        """Build the predictor frame and string-labelled categorical target"""
        X = self.df[feature_columns].copy()

        # checked before encoding so nothing is filled in
        if X.isnull().any().any():
            missing = X.columns[X.isnull().any()].tolist()
            raise ValueError(f"Missing values in predictors {missing}; clean the data first")

        if 'm_f' in X.columns:
            X['m_f'] = encode_sex(X['m_f']).values
        X = X.astype(float)
        
        y = self.df[self.target]
        if not isinstance(y.dtype, pd.CategoricalDtype):
            y = y.astype('category')
        if y.isnull().any():
            raise ValueError(f"Missing values in target '{self.target}'")
        y = y.cat.rename_categories([self._label(c) for c in y.cat.categories])
        
        self.labels = list(y.cat.categories)
        return X, y
    
    @staticmethod
    def check_degenerate(X):
        """Reject zero-variance columns and perfectly collinear predictor sets"""
        values = np.asarray(X, dtype=float)
        columns = list(X.columns) if hasattr(X, 'columns') else list(range(values.shape[1]))
        
        if values.shape[0] < 2:
            raise DegenerateInputError("Need at least two rows")
        
        std = values.std(axis=0)
        constant = [col for col, s in zip(columns, std) if np.isclose(s, 0)]
        if constant:
            raise DegenerateInputError(f"Zero-variance predictors: {constant}")
        
        scaled = (values - values.mean(axis=0)) / std
        rank = np.linalg.matrix_rank(scaled)
        if rank < values.shape[1]:
            raise DegenerateInputError(
                f"Predictors are collinear (rank {rank} < {values.shape[1]} columns): {columns}"
            )
    
    def run_pca(self, feature_columns=None, variance_threshold=PCA_VARIANCE_THRESHOLD):
        """Standardize the predictors and compute all principal components"""
        print("\n=== PRINCIPAL COMPONENT ANALYSIS ===")
        if feature_columns is None:
            feature_columns = PCA_FEATURES
        
        X, y = self.prepare_features(feature_columns)
        self.check_degenerate(X)
        
        scaler = StandardScaler()
        X_scaled = scaler.fit_transform(X)
        
        pca = PCA(random_state=self.random_state)
        scores = pca.fit_transform(X_scaled)
        names = [f'PC{i + 1}' for i in range(scores.shape[1])]
        
        scores = pd.DataFrame(scores, index=X.index, columns=names)
        explained = pd.Series(pca.explained_variance_ratio_, index=names, name='explained_variance_ratio')
        cumulative = explained.cumsum().rename('cumulative_variance')
        loadings = pd.DataFrame(pca.components_.T, index=feature_columns, columns=names)
        n_components = int(np.searchsorted(cumulative.values, variance_threshold) + 1)
        n_components = min(n_components, len(names))
        
        print(pd.concat([explained, cumulative], axis=1).round(4))
        print(f"\n{n_components} components explain {cumulative.iloc[n_components - 1]:.1%} of variance")
        print("\nLoadings:")
        print(loadings.round(3))
        
        return {
            'model': pca,
            'scaler': scaler,
            'scores': scores,
            'labels': y,
            'explained_variance_ratio': explained,
            'cumulative_variance': cumulative,
            'loadings': loadings,
            'n_components_for_threshold': n_components,
            'variance_threshold': variance_threshold
        }
    
    def split_data(self, feature_columns, train_fraction=TRAIN_FRACTION, random_state=None):
        """Stratified train/test split on the target"""
        if random_state is None:
            random_state = self.random_state
        
        X, y = self.prepare_features(feature_columns)
        
        counts = y.value_counts()
        too_small = counts[(counts > 0) & (counts < 2)]
        if len(too_small) > 0:
            raise StratificationError(
                f"Classes with fewer than 2 rows cannot be stratified: {too_small.to_dict()}"
            )
        
        try:
            X_train, X_test, y_train, y_test = train_test_split(
                X, y, train_size=train_fraction, random_state=random_state, stratify=np.asarray(y)
            )
        except ValueError as err:
            raise StratificationError(str(err)) from err
        
        print(f"Train rows: {len(X_train)}, test rows: {len(X_test)}")
        return X_train, X_test, y_train, y_test
    
    def _lda_summary(self, lda, feature_columns):
        n_axes = min(len(lda.explained_variance_ratio_), lda.scalings_.shape[1])
        axes = [f'LD{i + 1}' for i in range(n_axes)]
        return {
            'priors': pd.Series(lda.priors_, index=lda.classes_, name='prior'),
            'means': pd.DataFrame(lda.means_, index=lda.classes_, columns=feature_columns),
            'coefficients': pd.DataFrame(lda.scalings_[:, :n_axes], index=feature_columns, columns=axes),
            'explained_variance_ratio': pd.Series(lda.explained_variance_ratio_[:n_axes], index=axes)
        }
    
    def _lda_scores(self, lda, X, y):
        scores = lda.transform(X)
        names = [f'LD{i + 1}' for i in range(scores.shape[1])]
        scores = pd.DataFrame(scores, index=X.index, columns=names)
        scores[self.target] = np.asarray(y)
        return scores
    
    def train_lda(self, feature_columns=None, train_fraction=TRAIN_FRACTION, random_state=None):
        """Fit LDA on the training split and evaluate on the held-out rows"""
        print("\n=== LINEAR DISCRIMINANT ANALYSIS (held-out) ===")
        if feature_columns is None:
            feature_columns = LDA_FEATURES
        
        X_train, X_test, y_train, y_test = self.split_data(feature_columns, train_fraction, random_state)
        self.check_degenerate(X_train)
        
        lda = LinearDiscriminantAnalysis()
        lda.fit(X_train, np.asarray(y_train))
        y_pred = lda.predict(X_test)
        
        summary = self._lda_summary(lda, feature_columns)
        print("Prior probabilities:")
        print(summary['priors'].round(4))
        print("\nGroup means:")
        print(summary['means'].round(3))
        print("\nCoefficients of linear discriminants:")
        print(summary['coefficients'].round(4))
        print("\nProportion of trace:")
        print(summary['explained_variance_ratio'].round(4))
        
        evaluation = evaluate_classification(y_test, y_pred, self.labels)
        print(f"\nHeld-out accuracy: {evaluation['accuracy']:.3f}")
        
        return {
            'model': lda,
            **summary,
            'scores': self._lda_scores(lda, X_train, y_train),
            'test_scores': self._lda_scores(lda, X_test, y_test),
            'y_test': y_test,
            'y_pred': y_pred,
            'evaluation': evaluation
        }
    
    def lda_resubstitution(self, feature_columns=None):
        """
        Fit and evaluate LDA on the same rows
        The accuracy is optimistic and is kept only as a diagnostic.
        """
        print("\n=== LINEAR DISCRIMINANT ANALYSIS (in-sample, optimistic) ===")
        if feature_columns is None:
            feature_columns = LDA_FEATURES
        
        X, y = self.prepare_features(feature_columns)
        self.check_degenerate(X)
        
        lda = LinearDiscriminantAnalysis()
        lda.fit(X, np.asarray(y))
        y_pred = lda.predict(X)
        
        evaluation = evaluate_classification(y, y_pred, self.labels)
        print(f"In-sample accuracy: {evaluation['accuracy']:.3f} (not a generalization estimate)")
        
        return {
            'model': lda,
            **self._lda_summary(lda, feature_columns),
            'scores': self._lda_scores(lda, X, y),
            'y_pred': y_pred,
            'evaluation': evaluation,
            'optimistic': True
        }
    
    def _oob_confusion(self, rf, y_train):
        decision = rf.oob_decision_function_
        # rows never left out of a bootstrap sample have all-zero (or NaN) votes
        evaluated = np.nansum(decision, axis=1) > 0
        y_oob = rf.classes_[np.argmax(decision[evaluated], axis=1)]
        y_obs = np.asarray(y_train)[evaluated]
        
        cm = pd.DataFrame(
            confusion_matrix(y_obs, y_oob, labels=self.labels),
            index=pd.Index(self.labels, name='observed'),
            columns=pd.Index(self.labels, name='predicted')
        )
        totals = cm.sum(axis=1)
        diagonal = pd.Series(np.diag(cm.values), index=cm.index)
        cm['class_error'] = (1 - diagonal / totals.replace(0, np.nan)).values
        return cm
    
    def train_random_forest(self, feature_columns=None, n_estimators=N_TREES, max_features=MTRY,
                            train_fraction=TRAIN_FRACTION, random_state=None, n_repeats=10):
        """Train a random forest on the training split; report OOB error and importance"""
        print("\n=== RANDOM FOREST ===")
        if feature_columns is None:
            feature_columns = RF_FEATURES
        if random_state is None:
            random_state = self.random_state
        
        X_train, X_test, y_train, y_test = self.split_data(feature_columns, train_fraction, random_state)
        
        rf = RandomForestClassifier(
            n_estimators=n_estimators,
            max_features=max_features,
            bootstrap=True,
            oob_score=True,
            random_state=random_state
        )
        rf.fit(X_train, np.asarray(y_train))
        
        oob_error = 1 - rf.oob_score_
        oob_confusion = self._oob_confusion(rf, y_train)
        print(f"Trees: {n_estimators}, variables tried at each split: {max_features}")
        print(f"OOB estimate of error rate: {oob_error:.2%}")
        print("OOB confusion matrix:")
        print(oob_confusion.round(3))
        
        # Mean decrease in accuracy is measured on the held-out rows
        permutation = permutation_importance(
            rf, X_test, np.asarray(y_test), scoring='accuracy',
            n_repeats=n_repeats, random_state=random_state
        )
        importance = pd.DataFrame({
            'feature': feature_columns,
            'mean_decrease_accuracy': permutation.importances_mean,
            'mean_decrease_accuracy_std': permutation.importances_std,
            'mean_decrease_gini': rf.feature_importances_
        }).sort_values('mean_decrease_accuracy', ascending=False).reset_index(drop=True)
        
        print("\nVariable importance:")
        print(importance.round(4))
        
        y_pred = rf.predict(X_test)
        evaluation = evaluate_classification(y_test, y_pred, self.labels)
        print(f"\nHeld-out accuracy: {evaluation['accuracy']:.3f}")
        
        return {
            'model': rf,
            'oob_error': oob_error,
            'oob_confusion': oob_confusion,
            'importance': importance,
            'y_test': y_test,
            'y_pred': y_pred,
            'evaluation': evaluation
        }
    
    def oob_error_curve(self, feature_columns=None, tree_grid=None, max_features=MTRY,
                        train_fraction=TRAIN_FRACTION, random_state=None):
        """OOB error of a forest grown incrementally over tree_grid"""
        if feature_columns is None:
            feature_columns = RF_FEATURES
        if tree_grid is None:
            tree_grid = sorted(set(range(25, N_TREES, 25)) | {N_TREES})
        if random_state is None:
            random_state = self.random_state
        
        X_train, _, y_train, _ = self.split_data(feature_columns, train_fraction, random_state)
        
        rf = RandomForestClassifier(
            n_estimators=1,
            max_features=max_features,
            bootstrap=True,
            oob_score=True,
            warm_start=True,
            random_state=random_state
        )
        rows = []
        for n_trees in sorted(tree_grid):
            rf.set_params(n_estimators=n_trees)
            rf.fit(X_train, np.asarray(y_train))
            rows.append({'n_trees': n_trees, 'oob_error': 1 - rf.oob_score_})
        
        return pd.DataFrame(rows, columns=['n_trees', 'oob_error'])
