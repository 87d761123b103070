'''
OnlineForest: online (single pass) random forest regression with
context tree weighting aggregation of the tree nodes.
'''

from .models import OnlineForestRegressor

__all__ = ['OnlineForestRegressor']

__version__ = '0.0.1-alpha'
