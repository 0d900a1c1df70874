"""
Confusion matrix statistics for multi-class classifiers

Rows of the confusion matrix are observed classes and columns are predicted
classes (scikit-learn orientation).
"""

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import confusion_matrix

from .config import CONFIDENCE_LEVEL


def _ratio(numerator, denominator):
    if denominator == 0:
        return np.nan
    return numerator / denominator


def class_statistics(cm, labels):
    """One-vs-rest statistics for every class of a square confusion matrix"""
    cm = np.asarray(cm)
    n = cm.sum()
    rows = []
    
    for i, label in enumerate(labels):
        tp = cm[i, i]
        fn = cm[i, :].sum() - tp
        fp = cm[:, i].sum() - tp
        tn = n - tp - fn - fp
        
        sensitivity = _ratio(tp, tp + fn)
        specificity = _ratio(tn, tn + fp)
        rows.append({
            'class': label,
            'sensitivity': sensitivity,
            'specificity': specificity,
            'pos_pred_value': _ratio(tp, tp + fp),
            'neg_pred_value': _ratio(tn, tn + fn),
            'prevalence': _ratio(tp + fn, n),
            'detection_rate': _ratio(tp, n),
            'detection_prevalence': _ratio(tp + fp, n),
            'balanced_accuracy': (sensitivity + specificity) / 2,
        })
    
    return pd.DataFrame(rows).set_index('class')


def cohen_kappa(cm):
    """Cohen's kappa computed from a confusion matrix"""
    cm = np.asarray(cm, dtype=float)
    n = cm.sum()
    observed = np.trace(cm) / n
    expected = np.sum(cm.sum(axis=1) * cm.sum(axis=0)) / n ** 2
    if expected == 1:
        return np.nan
    return (observed - expected) / (1 - expected)


def evaluate_classification(y_true, y_pred, labels, confidence_level=CONFIDENCE_LEVEL):
    """
    Confusion matrix plus overall and per-class accuracy statistics
    
    The accuracy interval is the exact (Clopper-Pearson) binomial interval;
    accuracy is tested one-sided against the no-information rate and against
    uniform chance.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    
    if len(y_true) == 0:
        raise ValueError("Cannot evaluate an empty prediction set")
    if len(y_true) != len(y_pred):
        raise ValueError(f"Length mismatch: {len(y_true)} observed vs {len(y_pred)} predicted")
    
    labels = list(labels)
    cm = confusion_matrix(y_true, y_pred, labels=labels)
    cm_df = pd.DataFrame(
        cm,
        index=pd.Index(labels, name='observed'),
        columns=pd.Index(labels, name='predicted')
    )
    
    n = int(cm.sum())
    correct = int(np.trace(cm))
    accuracy = correct / n
    
    test = stats.binomtest(correct, n)
    ci = test.proportion_ci(confidence_level=confidence_level, method='exact')
    
    observed_counts = cm.sum(axis=1)
    no_information_rate = observed_counts.max() / n
    n_observed_classes = int(np.count_nonzero(observed_counts))
    chance_rate = 1 / n_observed_classes
    
    return {
        'confusion_matrix': cm_df,
        'n': n,
        'accuracy': accuracy,
        'accuracy_ci': (ci.low, ci.high),
        'confidence_level': confidence_level,
        'no_information_rate': no_information_rate,
        'p_value_acc_gt_nir': stats.binomtest(correct, n, p=no_information_rate, alternative='greater').pvalue,
        'chance_rate': chance_rate,
        'p_value_acc_gt_chance': stats.binomtest(correct, n, p=chance_rate, alternative='greater').pvalue,
        'kappa': cohen_kappa(cm),
        'by_class': class_statistics(cm, labels),
    }


def format_evaluation(result, title="Confusion Matrix and Statistics"):
    """Human-readable text block for an evaluate_classification result"""
    lines = [f"=== {title} ===", ""]
    lines.append(result['confusion_matrix'].to_string())
    lines.append("")
    
    low, high = result['accuracy_ci']
    level = int(round(result['confidence_level'] * 100))
    lines.append(f"Accuracy : {result['accuracy']:.4f}")
    lines.append(f"{level}% CI : ({low:.4f}, {high:.4f})")
    lines.append(f"No Information Rate : {result['no_information_rate']:.4f}")
    lines.append(f"P-Value [Acc > NIR] : {result['p_value_acc_gt_nir']:.4g}")
    lines.append(f"Chance Rate : {result['chance_rate']:.4f}")
    lines.append(f"P-Value [Acc > Chance] : {result['p_value_acc_gt_chance']:.4g}")
    lines.append(f"Kappa : {result['kappa']:.4f}")
    lines.append("")
    lines.append("Statistics by Class:")
    lines.append(result['by_class'].round(4).to_string())
    
    return '\n'.join(lines)
