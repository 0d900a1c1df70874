"""
Main experiment script for dementia severity analysis

This script runs the whole analysis as a single pass:
1. Data loading
2. Data cleaning
3. Descriptive statistics
4. Principal component analysis
5. Linear discriminant analysis
6. Random forest classification
7. Summary

Usage:
    dementia-analysis --data data/oasis_longitudinal.csv
"""

import argparse
import os
import sys
from datetime import datetime

from .analyzer import MLAnalyzer, StatisticalAnalyzer
from .config import (
    DATA_PATH, N_TREES, PAIRPLOT_COLUMNS, PCA_FEATURES, RANDOM_STATE, RESULTS_DIR
)
from .data_cleaner import DataCleaner
from .data_loader import DataLoader
from .evaluation import format_evaluation
from .visualizer import Visualizer


class Tee:
    """Helper class to redirect output to both console and file"""
    def __init__(self, *files):
        self.files = files
    def write(self, obj):
        for f in self.files:
            f.write(obj)
            f.flush()
    def flush(self):
        for f in self.files:
            f.flush()


def banner(title):
    print("\n" + "="*50)
    print(title)
    print("="*50)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Longitudinal dementia severity analysis")
    parser.add_argument('--data', default=str(DATA_PATH), help="visit-level CSV file")
    parser.add_argument('--results-dir', default=str(RESULTS_DIR), help="output directory")
    parser.add_argument('--seed', type=int, default=RANDOM_STATE, help="random seed for splits and forests")
    parser.add_argument('--n-trees', type=int, default=N_TREES, help="random forest size")
    parser.add_argument('--no-plots', action='store_true', help="skip figure generation")
    return parser.parse_args(argv)


def run_pipeline(data_path, results_dir, seed=RANDOM_STATE, n_trees=N_TREES, plots=True):
    """Run every analysis step in order and return their results"""
    os.makedirs(results_dir, exist_ok=True)
    results = {}
    
    # STEP 1: LOADING
    banner("STEP 1: DATA LOADING")
    loader = DataLoader(data_path)
    df_raw = loader.load_data()
    loader.explore_structure(df_raw)
    
    # STEP 2: CLEANING
    banner("STEP 2: DATA CLEANING")
    cleaner = DataCleaner()
    df_clean = cleaner.clean_dataset(df_raw)
    print("\n" + cleaner.generate_quality_report(df_raw, df_clean))
    
    df_clean.to_csv(os.path.join(results_dir, "processed_data.csv"), index=False)
    results['raw'] = df_raw
    results['clean'] = df_clean
    
    # STEP 3: DESCRIPTIVE STATISTICS
    banner("STEP 3: DESCRIPTIVE STATISTICS")
    stat_analyzer = StatisticalAnalyzer(df_clean)
    results['summary'] = stat_analyzer.summary_statistics()
    results['visits'] = stat_analyzer.visit_counts()
    results['sex'] = stat_analyzer.sex_comparison()
    results['group_cdr'] = stat_analyzer.group_cdr_association()
    results['correlation'] = stat_analyzer.correlation_matrix(PAIRPLOT_COLUMNS)
    
    visualizer = Visualizer(df_clean, results_dir) if plots else None
    if plots:
        visualizer.plot_visit_distribution(results['visits']['distribution'])
        visualizer.plot_pairwise()
        visualizer.plot_correlation_heatmap(results['correlation'])
    
    ml_analyzer = MLAnalyzer(df_clean, random_state=seed)
    
    # STEP 4: PCA
    banner("STEP 4: PRINCIPAL COMPONENT ANALYSIS")
    print(f"Variables: {PCA_FEATURES}")
    results['pca'] = ml_analyzer.run_pca()
    if plots:
        visualizer.plot_pca(results['pca'])
    
    # STEP 5: LDA
    banner("STEP 5: LINEAR DISCRIMINANT ANALYSIS")
    results['lda_in_sample'] = ml_analyzer.lda_resubstitution()
    print("\n" + format_evaluation(results['lda_in_sample']['evaluation'],
                                   "LDA in-sample (optimistic, diagnostic only)"))
    
    results['lda'] = ml_analyzer.train_lda()
    print("\n" + format_evaluation(results['lda']['evaluation'], "LDA held-out test set"))
    if plots:
        visualizer.plot_lda(results['lda'])
        visualizer.plot_confusion_matrix(results['lda']['evaluation']['confusion_matrix'],
                                         'LDA Confusion Matrix (test set)', 'lda_confusion_matrix.png')
    
    # STEP 6: RANDOM FOREST
    banner("STEP 6: RANDOM FOREST")
    results['rf'] = ml_analyzer.train_random_forest(n_estimators=n_trees)
    print("\n" + format_evaluation(results['rf']['evaluation'], "Random forest held-out test set"))
    tree_grid = sorted(set(range(25, n_trees, 25)) | {n_trees})
    results['oob_curve'] = ml_analyzer.oob_error_curve(tree_grid=tree_grid)
    if plots:
        visualizer.plot_feature_importance(results['rf']['importance'])
        visualizer.plot_oob_curve(results['oob_curve'])
        visualizer.plot_confusion_matrix(results['rf']['evaluation']['confusion_matrix'],
                                         'Random Forest Confusion Matrix (test set)', 'rf_confusion_matrix.png')
    
    # STEP 7: SUMMARY
    banner("STEP 7: SUMMARY")
    print(f"Visits analysed: {len(df_clean)} (dropped {cleaner.n_dropped} incomplete)")
    print(f"Subjects: {df_clean['subject_id'].nunique()}")
    
    pca = results['pca']
    n_pc = pca['n_components_for_threshold']
    print(f"PCA: {n_pc} components explain {pca['cumulative_variance'].iloc[n_pc - 1]:.1%} of variance")
    
    for name, key in [('LDA', 'lda'), ('Random forest', 'rf')]:
        evaluation = results[key]['evaluation']
        low, high = evaluation['accuracy_ci']
        print(f"{name} test accuracy: {evaluation['accuracy']:.3f} "
              f"(95% CI {low:.3f}-{high:.3f}, NIR {evaluation['no_information_rate']:.3f}, "
              f"p={evaluation['p_value_acc_gt_nir']:.4g})")
    print(f"Random forest OOB error: {results['rf']['oob_error']:.2%}")
    
    top = results['rf']['importance'].head(3)
    print("Top 3 variables by mean decrease in accuracy:")
    for _, row in top.iterrows():
        print(f"  {row['feature']}: {row['mean_decrease_accuracy']:.3f}")
    
    return results


def main(argv=None):
    """Main experiment workflow"""
    args = parse_args(argv)
    
    print("="*60)
    print("LONGITUDINAL DEMENTIA SEVERITY ANALYSIS")
    print("="*60)
    print(f"Started at: {datetime.now()}")
    
    results_dir = args.results_dir
    os.makedirs(results_dir, exist_ok=True)
    log_file = os.path.join(results_dir, "experiment_log.txt")
    
    with open(log_file, "w", encoding='utf-8') as f:
        original_stdout = sys.stdout
        sys.stdout = Tee(sys.stdout, f)
        try:
            results = run_pipeline(args.data, results_dir, seed=args.seed,
                                   n_trees=args.n_trees, plots=not args.no_plots)
        finally:
            sys.stdout = original_stdout
    
    print(f"\nExperiment completed successfully!")
    print(f"Results saved to: {results_dir}/")
    print(f"Log file: {log_file}")
    print(f"Completed at: {datetime.now()}")
    return results


if __name__ == "__main__":
    main()
