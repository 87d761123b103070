# -*- coding: utf-8 -*-
#
# This file is part of OnlineForest.
#
# OnlineForest is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# OnlineForest is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public License
# along with OnlineForest.  If not, see <http://www.gnu.org/licenses/>.


import logging
import numbers

import numpy as np

from joblib import Parallel, delayed

from sklearn.exceptions import NotFittedError
from sklearn.metrics import mean_squared_error
from sklearn.utils import check_random_state

from ..tree import Tree

from ..utils import pickle, unpickle
from ..utils import parallel_helper
from ..utils import check_features
from ..utils import check_labels
from ..utils import _get_n_jobs


logger = logging.getLogger(__name__)


MAX_INT = np.iinfo(np.int32).max

CRITERIA = ('unif', 'mse')


__all__ = ['OnlineForestRegressor']


class OnlineForestRegressor(object):
    '''
    Online random forest regressor.

    An ensemble of independent online regression trees, each of them
    updated with every new sample in the order in which the samples
    arrive. A tree splits the leaf a sample falls into using only that
    sample and the one previously retained by the leaf, and predicts
    with an exponentially weighted (context tree weighting) mixture
    of the running mean labels of the nodes on the path of the sample.
    The forest prediction is the average of the tree predictions.

    Parameters
    ----------
    n_trees: int, optional (default is 10)
        The number of trees in the forest.

    step: float, optional (default is 1.0)
        The learning rate of the exponential weights of the nodes.

    criterion: string, optional (default is 'unif')
        The splitting criterion, one of 'unif' or 'mse'. The trees are
        grown by splitting every leaf that receives a new sample at a
        uniformly random threshold, hence the criterion does not change
        the way they are grown.

    n_threads: int, optional (default is 1)
        The number of threads used to fit and query the trees in parallel.
        If -1, the number of CPUs will be used.

    seed: int, RandomState instance or None, optional (default is None)
        The seed of the random number generator used to derive the
        generators of the individual trees.

    verbose: bool, optional (default is False)
        If True, the progress of training is logged at INFO level.
    '''
    def __init__(self, n_trees=10, step=1.0, criterion='unif', n_threads=1,
                 seed=None, verbose=False):
        if n_trees < 1:
            raise ValueError('n_trees must be a positive integer, got %r' % n_trees)

        self.trees = []
        self._n_trees = n_trees
        self._n_features = None
        self.iteration = 0

        self.step = step
        self.criterion = criterion
        self.n_threads = n_threads
        self.verbose = verbose

        self._create_trees()
        self.seed = seed

    def _create_trees(self):
        '''
        Create the (empty) trees of the forest.
        '''
        self.trees = [Tree(self) for _ in range(self._n_trees)]

    def _log(self, msg, *args):
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg, *args)

    def _check_is_fitted(self):
        if self.iteration == 0:
            raise NotFittedError('the model has not been trained yet')

    def _check_n_features(self, X):
        if X.shape[1] != self._n_features:
            raise ValueError('Number of features (%d) does not match number '
                             'of features in previous call to fit (%d).'
                             % (X.shape[1], self._n_features))

    @property
    def n_trees(self):
        return self._n_trees

    @n_trees.setter
    def n_trees(self, n_trees):
        if self.iteration > 0:
            raise ValueError('the number of trees cannot be changed after '
                             'the model has been trained')
        if n_trees < 1:
            raise ValueError('n_trees must be a positive integer, got %r' % n_trees)
        self._n_trees = n_trees
        self._create_trees()
        # The new trees need their own random number generators.
        self.seed = self._seed

    @property
    def step(self):
        return self._step

    @step.setter
    def step(self, step):
        if step <= 0:
            raise ValueError('step must be positive, got %r' % step)
        self._step = float(step)

    @property
    def criterion(self):
        return self._criterion

    @criterion.setter
    def criterion(self, criterion):
        if criterion not in CRITERIA:
            raise ValueError('unknown criterion %r, must be one of %s'
                             % (criterion, ', '.join(CRITERIA)))
        self._criterion = criterion

    @property
    def n_threads(self):
        return self._n_threads

    @n_threads.setter
    def n_threads(self, n_threads):
        if n_threads == 0:
            raise ValueError('n_threads == 0 has no meaning')
        self._n_threads = n_threads

    @property
    def seed(self):
        return self._seed

    @seed.setter
    def seed(self, seed):
        '''
        Reseed the forest and derive a new random number
        generator for each tree from it.
        '''
        self._seed = seed
        self.random_state = check_random_state(seed)
        for tree in self.trees:
            tree.random_state = check_random_state(self.random_state.randint(MAX_INT))

    @property
    def n_features(self):
        if self._n_features is None:
            raise NotFittedError('the model has not been trained yet')
        return self._n_features

    @n_features.setter
    def n_features(self, n_features):
        if self.iteration > 0:
            raise ValueError('the number of features is fixed by the first '
                             'call to fit and cannot be changed')
        if not isinstance(n_features, numbers.Integral) or n_features < 1:
            raise ValueError('n_features must be a positive integer, got %r' % n_features)
        self._n_features = n_features

    @property
    def n_samples(self):
        '''
        The number of samples processed so far.
        '''
        self._check_is_fitted()
        return self.iteration

    def sample_feature(self, features=None, random_state=None):
        '''
        Draw a splitting feature uniformly at random.

        Parameters
        ----------
        features: array of ints or None, optional (default is None)
            The candidate features. If None, the feature is drawn
            from all the `n_features` features.

        random_state: RandomState instance or None, optional (default is None)
            The generator to draw from. If None, the generator of the
            forest is used.
        '''
        if random_state is None:
            random_state = self.random_state

        if features is None:
            return int(random_state.randint(0, self.n_features))

        return int(features[random_state.randint(0, len(features))])

    def sample_threshold(self, left, right, random_state=None):
        '''
        Draw a splitting threshold uniformly from [left, right).
        '''
        if random_state is None:
            random_state = self.random_state

        threshold = random_state.uniform(left, right)

        # Rounding of left + (right - left) * u may reach right.
        if threshold >= right:
            return left
        return threshold

    def fit(self, X, y):
        '''
        Update the forest online with the samples (X, y), one after
        another, in the order of the rows.

        Parameters
        ----------
        X : array, shape = (n_samples, n_features)
            The training input samples.

        y : array, shape = (n_samples,)
            The target values.

        Returns
        -------
        self : object
            Returns self.
        '''
        X = check_features(X)
        y = check_labels(y, X.shape[0])

        n_samples, n_features = X.shape

        # First call to fit(...)?
        if self.iteration == 0:
            if self._n_features is None:
                self._n_features = n_features

        self._check_n_features(X)

        self._log('Fitting %d trees with %d samples (iteration %d).',
                  self._n_trees, n_samples, self.iteration)

        # The trees never interact and each of them consumes the rows in
        # their order, so they can be fitted independently.
        Parallel(n_jobs=_get_n_jobs(self.n_threads), backend='threading')(
            delayed(parallel_helper)(tree, 'fit_batch', X, y)
            for tree in self.trees)

        self.iteration += n_samples

        self._log('Fitting of %d samples has finished (iteration %d).',
                  n_samples, self.iteration)

        return self

    def predict(self, X, use_aggregation=True):
        '''
        Predict regression target for X.

        The predicted regression target of an input sample is computed as the
        mean predicted regression targets of the trees in the forest.

        Parameters
        ----------
        X : array, shape = (n_samples, n_features)
            The input samples.

        use_aggregation: bool, optional (default is True)
            If True, each tree predicts with the weighted mixture of the
            nodes along the path of the sample. If False, each tree
            predicts the label retained by the leaf the sample falls into.

        Returns
        -------
        y : array, shape = (n_samples, )
            The predicted values.
        '''
        self._check_is_fitted()

        X = check_features(X)

        self._check_n_features(X)

        self._log('Predicting %d samples.', X.shape[0])

        all_y_hat = Parallel(n_jobs=_get_n_jobs(self.n_threads), backend='threading')(
            delayed(parallel_helper)(tree, 'predict_batch', X, use_aggregation)
            for tree in self.trees)

        return sum(all_y_hat) / len(self.trees)

    def apply(self, X):
        '''
        Apply trees in the forest to X, return leaf indices.

        Parameters
        ----------
        X : array, shape = (n_samples, n_features)
            The input samples.

        Returns
        -------
        X_leaves : array, shape = (n_samples, n_trees)
            For each sample x in X and for each tree in the forest,
            return the index of the leaf x ends up in.
        '''
        self._check_is_fitted()

        X = check_features(X)

        self._check_n_features(X)

        results = Parallel(n_jobs=_get_n_jobs(self.n_threads), backend='threading')(
            delayed(parallel_helper)(tree, 'apply', X)
            for tree in self.trees)

        return np.array(results).T

    def evaluate(self, X, y, use_aggregation=True):
        '''
        Return the mean squared error of the predictions for X.
        '''
        predictions = self.predict(X, use_aggregation=use_aggregation)
        return mean_squared_error(check_labels(y, predictions.shape[0]),
                                  predictions)

    def print_trees(self):
        '''
        Log the nodes of every tree in the forest.
        '''
        for i, tree in enumerate(self.trees):
            logger.info('Tree %d of %d:\n%s' % (i + 1, self._n_trees, tree))

    @classmethod
    def load(cls, filepath):
        '''
        Load the previously saved OnlineForestRegressor model from the specified file.

        Parameters:
        -----------
        filepath: string
            The filepath, from which a OnlineForestRegressor object will be loaded.
        '''
        logger.info("Loading %s object from %s" % (cls.__name__, filepath))
        return unpickle(filepath)

    def save(self, filepath):
        '''
        Save the OnlineForestRegressor model into the specified file.

        Parameters:
        -----------
        filepath: string
            The filepath where this object will be saved.
        '''
        logger.info("Saving %s object into %s" % (self.__class__.__name__, filepath))
        pickle(self, filepath)

    def __str__(self):
        '''
        Return textual representation of the OnlineForestRegressor model.
        '''
        return ('OnlineForestRegressor(trees=%d, step=%g, criterion=%s, '
                'n_threads=%d, iteration=%d, nodes=%d)'
                % (self._n_trees, self._step, self._criterion,
                   self._n_threads, self.iteration,
                   sum(tree.n_nodes for tree in self.trees)))
