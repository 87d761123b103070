'''
Module containing the online random forest regressor, an ensemble of
online regression trees updated with every new sample.
'''

from .forest import OnlineForestRegressor

__all__ = ['OnlineForestRegressor']
