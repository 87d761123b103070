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

import numpy as np

from math import exp

from sklearn.utils import check_random_state


logger = logging.getLogger(__name__)


__all__ = ['Node', 'Tree']


# =============================================================================
# Node of an Online Regression Tree
# =============================================================================


class Node(object):
    '''
    A single record in the node arena of a `Tree`.

    A node is either a leaf holding one retained sample, or an internal
    node holding a split rule (`feature`, `threshold`). Every node, leaf
    or internal, keeps the last sample it retained in (`x_t`, `y_t`),
    which is what makes a split possible with O(1) memory per node.

    Nodes do not know their tree, the algorithms that need the tree-wide
    configuration receive it as an argument.

    Parameters
    ----------
    parent: int
        The index of the parent node in the arena. The root (index 0)
        is its own parent.
    '''
    __slots__ = ('parent', 'left', 'right', 'feature', 'threshold',
                 'n_samples', 'x_t', 'y_t', 'weight', 'weight_tree',
                 'predict', 'is_leaf')

    def __init__(self, parent):
        self.parent = parent
        self.left = 0
        self.right = 0
        self.feature = 0
        self.threshold = 0.0
        self.n_samples = 0
        self.x_t = None
        self.y_t = 0.0
        self.weight = 1.0
        self.weight_tree = 1.0
        self.predict = 0.0
        self.is_leaf = True

    def loss(self, y_t):
        '''
        Halved squared error of the running mean prediction.
        '''
        diff = self.predict - y_t
        return diff * diff / 2

    def update_downwards(self, y_t, step):
        '''
        Update the node with a label of a sample passing through it.

        The weight is decayed with the loss of the prediction made
        *before* the label is added to the running mean.

        Parameters
        ----------
        y_t: float
            The label of the sample.

        step: float
            The learning rate of the exponential weights.
        '''
        self.n_samples += 1
        self.weight *= exp(-step * self.loss(y_t))
        self.predict = ((self.n_samples - 1) * self.predict + y_t) / self.n_samples

    def update_upwards(self, nodes):
        '''
        Recompute the aggregated weight of the subtree rooted in this node.

        Parameters
        ----------
        nodes: list of Node
            The arena of the tree the node belongs to.
        '''
        if self.is_leaf:
            self.weight_tree = self.weight
        else:
            self.weight_tree = (self.weight + nodes[self.left].weight_tree *
                                nodes[self.right].weight_tree) / 2

    def __repr__(self):
        if self.is_leaf:
            sample = ('[%s]' % ', '.join('%.2f' % v for v in self.x_t)
                      if self.x_t is not None else 'null')
            return ('Node(parent: %d, leaf, y_hat: %g, sample: %s, y_t: %g, '
                    'n: %d, weight: %g, weight_tree: %g)'
                    % (self.parent, self.predict, sample, self.y_t,
                       self.n_samples, self.weight, self.weight_tree))
        else:
            return ('Node(parent: %d, left: %d, right: %d, f: %d, thresh: %g, '
                    'y_hat: %g, n: %d, weight: %g, weight_tree: %g)'
                    % (self.parent, self.left, self.right, self.feature,
                       self.threshold, self.predict, self.n_samples,
                       self.weight, self.weight_tree))


# =============================================================================
# Online Regression Tree
# =============================================================================


class Tree(object):
    '''
    Online regression tree grown one sample at a time.

    The nodes live in an append-only list (`nodes`) and refer to each
    other by index; the root is always the node 0. Every new sample
    (except the very first one) splits the leaf it falls into, so the
    tree gains exactly two nodes per sample. The prediction is a
    context tree weighting mixture of the running mean labels of the
    nodes along the root-to-leaf path.

    Parameters
    ----------
    forest: OnlineForestRegressor
        The forest owning the tree. It provides the learning rate
        (`step`), the number of features, and the feature and threshold
        samplers.

    random_state : int, RandomState instance or None, optional (default is None)
        If int, random_state is the seed used by the random number generator;
        If RandomState instance, random_state is the random number generator;
        If None, the random number generator is the RandomState instance used
        by `np.random`.
    '''
    def __init__(self, forest, random_state=None):
        self.forest = forest
        self.random_state = check_random_state(random_state)
        self.nodes = []
        self.iteration = 0
        self.add_node(0)

    @property
    def n_nodes(self):
        return len(self.nodes)

    @property
    def step(self):
        return self.forest.step

    def add_node(self, parent):
        '''
        Append a new leaf under `parent` and return its index.
        '''
        self.nodes.append(Node(parent))
        return len(self.nodes) - 1

    def depth(self, index):
        '''
        Return the depth of the node (the root has depth 0).
        '''
        depth = 0
        while index != 0:
            index = self.nodes[index].parent
            depth += 1
        return depth

    def go_downwards(self, x_t, y_t, predict_only):
        '''
        Find the leaf containing the sample.

        Parameters
        ----------
        x_t: array of doubles, shape = (n_features,)
            The feature vector of the sample.

        y_t: float
            The label of the sample, ignored when `predict_only` is True.

        predict_only: bool
            If False, every node on the path to the leaf (including the
            leaf) is updated with the label. If True, the tree is left
            untouched.

        Returns
        -------
        index: int
            The index of the leaf.
        '''
        # The root is always the node 0.
        index = 0
        step = self.step
        while True:
            node = self.nodes[index]
            if not predict_only:
                node.update_downwards(y_t, step)
            if node.is_leaf:
                return index
            if x_t[node.feature] <= node.threshold:
                index = node.left
            else:
                index = node.right

    def split_leaf(self, index, x_t, y_t):
        '''
        Split the leaf using the new sample and the sample retained
        by the leaf.

        The splitting feature is drawn among the features on which the
        two samples differ, and the threshold is drawn uniformly between
        their values, so that each sample ends in a different child.

        Parameters
        ----------
        index: int
            The index of the leaf.

        x_t: array of doubles, shape = (n_features,)
            The feature vector of the new sample.

        y_t: float
            The label of the new sample.

        Returns
        -------
        data_leaf: int
            The index of the child containing the new sample. Its weight
            tree is not updated yet, see `go_upwards`.
        '''
        features = np.flatnonzero(x_t != self.nodes[index].x_t)

        if features.size == 0:
            raise ValueError('cannot split leaf %d: the new sample is identical '
                             'to the retained one' % index)

        left = self.add_node(index)
        right = self.add_node(index)

        node = self.nodes[index]
        node.left = left
        node.right = right
        node.is_leaf = False

        feature = self.forest.sample_feature(features, self.random_state)

        x1_tj = x_t[feature]
        x2_tj = node.x_t[feature]

        # The new sample goes to the side its value lies on.
        if x1_tj < x2_tj:
            threshold = self.forest.sample_threshold(x1_tj, x2_tj, self.random_state)
            data_leaf, other_leaf = left, right
        else:
            threshold = self.forest.sample_threshold(x2_tj, x1_tj, self.random_state)
            data_leaf, other_leaf = right, left

        node.feature = feature
        node.threshold = threshold

        data_node = self.nodes[data_leaf]
        data_node.x_t = x_t
        data_node.y_t = y_t

        other_node = self.nodes[other_leaf]
        other_node.x_t = node.x_t
        other_node.y_t = node.y_t

        step = self.step

        other_node.update_downwards(node.y_t, step)
        other_node.update_upwards(self.nodes)

        # The data leaf is updated upwards in `go_upwards`.
        data_node.update_downwards(y_t, step)

        return data_leaf

    def go_upwards(self, leaf):
        '''
        Update the weight trees of all the nodes from `leaf` to the root.
        '''
        index = leaf
        while True:
            node = self.nodes[index]
            node.update_upwards(self.nodes)
            if index == 0:
                break
            index = node.parent

    def fit(self, x_t, y_t):
        '''
        Update the tree online with a single sample.

        Parameters
        ----------
        x_t: array of doubles, shape = (n_features,)
            The feature vector of the sample.

        y_t: float
            The label of the sample.

        Returns
        -------
        self : object
            Returns self.
        '''
        x_t = np.array(x_t, dtype=np.float64)
        y_t = float(y_t)

        # The root needs a sample before it can be split.
        if self.iteration == 0:
            root = self.nodes[0]
            root.x_t = x_t
            root.y_t = y_t
            self.iteration += 1
            return self

        leaf = self.go_downwards(x_t, y_t, False)

        if np.array_equal(x_t, self.nodes[leaf].x_t):
            logger.debug('Sample identical to the one retained by leaf %d, '
                         'the leaf is not split.' % leaf)
            node = self.nodes[leaf]
            node.x_t = x_t
            node.y_t = y_t
            new_leaf = leaf
        else:
            new_leaf = self.split_leaf(leaf, x_t, y_t)

        self.go_upwards(new_leaf)
        self.iteration += 1
        return self

    def fit_batch(self, X, y):
        '''
        Update the tree online with the rows of X, in their order.
        '''
        for i in range(X.shape[0]):
            self.fit(X[i], y[i])
        return self

    def predict(self, x_t, use_aggregation=True):
        '''
        Predict the label of a single sample.

        Parameters
        ----------
        x_t: array of doubles, shape = (n_features,)
            The feature vector of the sample.

        use_aggregation: bool, optional (default is True)
            If True, the prediction is the mixture of the predictions of
            all the nodes on the path from the root to the leaf containing
            the sample, weighted by their (aggregated) weights. If False,
            the label retained by the leaf is returned.

        Returns
        -------
        y_hat: float
            The predicted label.
        '''
        leaf = self.go_downwards(x_t, 0., True)

        if not use_aggregation:
            return self.nodes[leaf].y_t

        index = leaf
        # The child of the current node which does not contain the sample.
        other = 0
        weight = 0.0

        while True:
            node = self.nodes[index]
            if node.is_leaf:
                weight = node.weight * node.predict
            else:
                weight = (0.5 * node.weight * node.predict +
                          0.5 * self.nodes[other].weight_tree * weight)
            if index == 0:
                break
            parent = self.nodes[node.parent]
            other = parent.right if parent.left == index else parent.left
            index = node.parent

        # Underflowed weights give nan (no log-domain safeguard).
        return np.float64(weight) / self.nodes[0].weight_tree

    def predict_batch(self, X, use_aggregation=True):
        '''
        Predict the labels of the rows of X.

        Returns
        -------
        y : array of doubles, shape = (n_samples,)
            The predicted labels.
        '''
        predictions = np.empty(X.shape[0], dtype=np.float64)
        for i in range(X.shape[0]):
            predictions[i] = self.predict(X[i], use_aggregation)
        return predictions

    def apply(self, X):
        '''
        Return the index of the leaf each row of X falls into.
        '''
        return np.fromiter((self.go_downwards(X[i], 0., True)
                            for i in range(X.shape[0])),
                           dtype=np.intp, count=X.shape[0])

    def __str__(self):
        '''
        Return textual representation of the tree, one node per line.
        '''
        lines = ['Tree(nodes=%d, iteration=%d)' % (self.n_nodes, self.iteration)]
        lines.extend('  %d: %r' % (index, node)
                     for index, node in enumerate(self.nodes))
        return '\n'.join(lines)
