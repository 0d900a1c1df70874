"""
Exploratory analysis and classification of dementia severity from
longitudinal MRI and demographic data
"""

from .data_loader import DataLoader
from .data_cleaner import DataCleaner
from .analyzer import StatisticalAnalyzer, MLAnalyzer
from .evaluation import evaluate_classification, format_evaluation
from .visualizer import Visualizer
from .exceptions import SchemaError, DegenerateInputError, StratificationError

__all__ = [
    'DataLoader',
    'DataCleaner', 
    'StatisticalAnalyzer',
    'MLAnalyzer',
    'Visualizer',
    'evaluate_classification',
    'format_evaluation',
    'SchemaError',
    'DegenerateInputError',
    'StratificationError'
]
