"""
Errors raised by the analysis pipeline
"""


class SchemaError(ValueError):
    """Input file does not have the expected columns"""


class DegenerateInputError(ValueError):
    """Predictor matrix has a zero-variance or perfectly collinear column"""


class StratificationError(ValueError):
    """A class is too small to be split into train and test partitions"""
