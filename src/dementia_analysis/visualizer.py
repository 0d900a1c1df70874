"""
Visualization utilities for dementia severity analysis
"""

import os

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .analyzer import encode_sex
from .config import PAIRPLOT_COLUMNS, RESULTS_DIR


class Visualizer:
    """Saves every figure as a PNG in results_dir and returns its path"""
    
    def __init__(self, df, results_dir=RESULTS_DIR):
        self.df = df
        self.results_dir = str(results_dir)
        os.makedirs(self.results_dir, exist_ok=True)
        # Set style
        plt.style.use('default')
        sns.set_palette("husl")
    
    def _save(self, fig, filename):
        path = os.path.join(self.results_dir, filename)
        fig.savefig(path, dpi=300, bbox_inches='tight')
        plt.close(fig)
        print(f"Saved {path}")
        return path
    
    @staticmethod
    def _cdr_hue(values):
        """CDR as strings with a fixed hue order, unused levels removed"""
        values = pd.Series(values)
        if not isinstance(values.dtype, pd.CategoricalDtype):
            values = values.astype('category')
        values = values.cat.remove_unused_categories()
        order = [str(level) for level in values.cat.categories]
        return values.astype(str), order
    
    def plot_visit_distribution(self, distribution, filename='visit_distribution.png'):
        """Bar chart of number of subjects per visit count"""
        fig, ax = plt.subplots(figsize=(6, 4))
        ax.bar(distribution['n_visits'].astype(str), distribution['n_subjects'], color='skyblue')
        ax.set_xlabel('Visits per subject')
        ax.set_ylabel('Subjects')
        ax.set_title('Distribution of Visit Counts')
        return self._save(fig, filename)
    
    def plot_pairwise(self, columns=None, hue='cdr', filename='pairwise.png'):
        """Pairwise scatter matrix coloured by CDR"""
        if columns is None:
            columns = PAIRPLOT_COLUMNS
        
        frame = self.df[columns].copy()
        if 'm_f' in frame.columns:
            frame['m_f'] = encode_sex(frame['m_f']).values
        frame[hue], hue_order = self._cdr_hue(frame[hue])
        
        variables = [col for col in columns if col != hue]
        grid = sns.pairplot(frame, vars=variables, hue=hue, hue_order=hue_order,
                            diag_kind='hist', plot_kws={'alpha': 0.6, 's': 15})
        grid.figure.suptitle('Pairwise Relationships by CDR', y=1.02)
        return self._save(grid.figure, filename)
    
    def plot_correlation_heatmap(self, corr, filename='correlation_matrix.png'):
        """Annotated correlation heatmap"""
        fig, ax = plt.subplots(figsize=(9, 7))
        sns.heatmap(corr, annot=True, cmap='coolwarm', center=0, ax=ax,
                    square=True, fmt='.2f')
        ax.set_title('Correlation Matrix')
        return self._save(fig, filename)
    
    def plot_pca(self, pca_result, filename='pca.png'):
        """Scree plot and score scatterplots of the first three components"""
        explained = pca_result['explained_variance_ratio']
        cumulative = pca_result['cumulative_variance']
        scores = pca_result['scores']
        hue, hue_order = self._cdr_hue(pca_result['labels'])
        hue.index = scores.index
        
        pairs = [(a, b) for a, b in [('PC1', 'PC2'), ('PC1', 'PC3'), ('PC2', 'PC3')]
                 if a in scores.columns and b in scores.columns]
        
        fig, axes = plt.subplots(1, 1 + len(pairs), figsize=(5 * (1 + len(pairs)), 4.5))
        axes = list(axes) if len(pairs) else [axes]
        
        ax = axes[0]
        ax.bar(explained.index, explained.values, color='skyblue', label='Per component')
        ax.plot(cumulative.index, cumulative.values, 'o-', color='darkred', label='Cumulative')
        ax.axhline(pca_result['variance_threshold'], linestyle='--', color='gray')
        ax.set_ylim(0, 1.05)
        ax.set_ylabel('Proportion of variance')
        ax.set_title('Variance Explained')
        ax.legend()
        
        for ax, (x_col, y_col) in zip(axes[1:], pairs):
            sns.scatterplot(x=scores[x_col], y=scores[y_col], hue=hue, hue_order=hue_order,
                            alpha=0.7, ax=ax)
            ax.set_title(f'{x_col} vs {y_col}')
            ax.legend(title='CDR')
        
        fig.tight_layout()
        return self._save(fig, filename)
    
    def plot_lda(self, lda_result, filename='lda.png'):
        """Training rows in discriminant space"""
        scores = lda_result['scores']
        target = [col for col in scores.columns if not col.startswith('LD')][0]
        hue_order = sorted(scores[target].unique(), key=float)
        
        fig, ax = plt.subplots(figsize=(7, 5))
        if 'LD2' in scores.columns:
            sns.scatterplot(data=scores, x='LD1', y='LD2', hue=target, hue_order=hue_order,
                            alpha=0.7, ax=ax)
        else:
            sns.stripplot(data=scores, x='LD1', y=target, order=hue_order, ax=ax)
        ax.set_title('Linear Discriminants')
        return self._save(fig, filename)
    
    def plot_feature_importance(self, importance_df, filename='feature_importance.png'):
        """Mean decrease in accuracy and in Gini impurity per variable"""
        fig, axes = plt.subplots(1, 2, figsize=(12, 5))
        
        by_accuracy = importance_df.sort_values('mean_decrease_accuracy', ascending=True)
        axes[0].barh(by_accuracy['feature'], by_accuracy['mean_decrease_accuracy'],
                     xerr=by_accuracy.get('mean_decrease_accuracy_std'))
        axes[0].set_xlabel('Mean decrease in accuracy')
        
        by_gini = importance_df.sort_values('mean_decrease_gini', ascending=True)
        axes[1].barh(by_gini['feature'], by_gini['mean_decrease_gini'], color='lightcoral')
        axes[1].set_xlabel('Mean decrease in Gini')
        
        fig.suptitle('Random Forest Variable Importance')
        fig.tight_layout()
        return self._save(fig, filename)
    
    def plot_oob_curve(self, curve_df, filename='oob_error.png'):
        """OOB error against number of trees"""
        fig, ax = plt.subplots(figsize=(6, 4))
        ax.plot(curve_df['n_trees'], curve_df['oob_error'], 'o-')
        ax.set_xlabel('Number of trees')
        ax.set_ylabel('OOB error rate')
        ax.set_title('Out-of-Bag Error')
        return self._save(fig, filename)
    
    def plot_confusion_matrix(self, cm_df, title='Confusion Matrix', filename='confusion_matrix.png'):
        """Annotated confusion matrix heatmap"""
        fig, ax = plt.subplots(figsize=(6, 5))
        sns.heatmap(cm_df, annot=True, fmt='d', cmap='Blues', ax=ax)
        ax.set_ylabel('Observed')
        ax.set_xlabel('Predicted')
        ax.set_title(title)
        return self._save(fig, filename)
