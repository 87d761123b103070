from math import exp

import numpy as np
import pytest

from onlineforest import OnlineForestRegressor
from onlineforest.tree import Node, Tree


def _make_tree(step=1.0, seed=0):
    forest = OnlineForestRegressor(n_trees=1, step=step, seed=seed)
    return Tree(forest, random_state=seed)


def _stream(n_samples=40, n_features=3, seed=0):
    rng = np.random.RandomState(seed)
    X = rng.uniform(size=(n_samples, n_features))
    y = rng.uniform(size=n_samples)
    return X, y


def _subtree_weight(tree, index):
    node = tree.nodes[index]
    if node.is_leaf:
        return node.weight
    return (node.weight + _subtree_weight(tree, node.left) *
            _subtree_weight(tree, node.right)) / 2


def _mixture(tree, index, x):
    node = tree.nodes[index]
    if node.is_leaf:
        return node.weight * node.predict
    if x[node.feature] <= node.threshold:
        inner, other = node.left, node.right
    else:
        inner, other = node.right, node.left
    return (0.5 * node.weight * node.predict +
            0.5 * _subtree_weight(tree, other) * _mixture(tree, inner, x))


def _route(tree, x):
    index = 0
    while not tree.nodes[index].is_leaf:
        node = tree.nodes[index]
        index = node.left if x[node.feature] <= node.threshold else node.right
    return index


def test_node_update_downwards_uses_prediction_before_update():
    node = Node(0)

    node.update_downwards(2.0, 1.0)
    assert node.n_samples == 1
    assert node.weight == pytest.approx(exp(-2.0))
    assert node.predict == pytest.approx(2.0)

    node.update_downwards(4.0, 0.5)
    assert node.n_samples == 2
    assert node.weight == pytest.approx(exp(-2.0) * exp(-1.0))
    assert node.predict == pytest.approx(3.0)


def test_node_update_upwards():
    nodes = [Node(0), Node(0), Node(0)]
    root, left, right = nodes
    root.weight, left.weight, right.weight = 0.5, 0.2, 0.4

    left.update_upwards(nodes)
    right.update_upwards(nodes)
    assert left.weight_tree == 0.2
    assert right.weight_tree == 0.4

    root.is_leaf = False
    root.left, root.right = 1, 2
    root.update_upwards(nodes)
    assert root.weight_tree == pytest.approx((0.5 + 0.2 * 0.4) / 2)


def test_two_points_split_the_root():
    tree = _make_tree(step=1.0)

    tree.fit(np.array([0.0, 0.0]), 1.0)
    assert tree.n_nodes == 1
    assert tree.nodes[0].is_leaf
    assert tree.nodes[0].n_samples == 0

    tree.fit(np.array([1.0, 0.0]), 2.0)
    assert tree.n_nodes == 3

    root, left, right = tree.nodes
    assert not root.is_leaf
    # The samples differ on the first feature only.
    assert root.feature == 0
    assert 0.0 <= root.threshold < 1.0

    assert root.weight == pytest.approx(exp(-2.0))
    assert left.y_t == 1.0 and left.weight == pytest.approx(exp(-0.5))
    assert right.y_t == 2.0 and right.weight == pytest.approx(exp(-2.0))
    assert root.weight_tree == pytest.approx(
        (root.weight + left.weight * right.weight) / 2)

    assert tree.predict(np.array([1.0, 0.0]), use_aggregation=False) == 2.0
    assert tree.predict(np.array([0.0, 0.0]), use_aggregation=False) == 1.0

    assert tree.predict(np.array([1.0, 0.0])) == pytest.approx(2.0)
    assert tree.predict(np.array([0.0, 0.0])) == pytest.approx(
        (2 * exp(-2.0) + exp(-2.5)) / (exp(-2.0) + exp(-2.5)))


def test_each_sample_after_the_first_adds_two_nodes():
    tree = _make_tree()
    X, y = _stream(n_samples=50)

    for i in range(X.shape[0]):
        tree.fit(X[i], y[i])
        assert tree.n_nodes == 1 + 2 * i
        assert tree.iteration == i + 1


def test_fresh_children_hold_a_single_sample():
    step = 0.5
    tree = _make_tree(step=step)
    X, y = _stream(n_samples=20)

    tree.fit(X[0], y[0])
    for i in range(1, X.shape[0]):
        tree.fit(X[i], y[i])
        for index in (tree.n_nodes - 2, tree.n_nodes - 1):
            child = tree.nodes[index]
            assert child.is_leaf
            assert child.n_samples == 1
            assert child.predict == pytest.approx(child.y_t)
            # The weight is decayed against the initial (zero) prediction.
            assert child.weight == pytest.approx(exp(-step * child.y_t ** 2 / 2))


def test_weight_tree_recursion_holds_for_every_node():
    tree = _make_tree(step=0.3)
    X, y = _stream(n_samples=60)

    tree.fit_batch(X, y)

    for node in tree.nodes:
        if node.is_leaf:
            assert node.weight_tree == node.weight
        else:
            expected = (node.weight + tree.nodes[node.left].weight_tree *
                        tree.nodes[node.right].weight_tree) / 2
            assert node.weight_tree == pytest.approx(expected)


def test_prediction_without_aggregation_is_the_routed_leaf_label():
    tree = _make_tree()
    X, y = _stream(n_samples=40)
    tree.fit_batch(X, y)

    X_query, _ = _stream(n_samples=25, seed=1)
    for x in X_query:
        assert tree.predict(x, use_aggregation=False) == tree.nodes[_route(tree, x)].y_t


def test_training_samples_are_retained_by_their_leaves():
    tree = _make_tree()
    X, y = _stream(n_samples=40)
    tree.fit_batch(X, y)

    np.testing.assert_array_equal(tree.predict_batch(X, use_aggregation=False), y)


def test_aggregated_prediction_matches_recursive_mixture():
    tree = _make_tree(step=0.1)
    X, y = _stream(n_samples=40)
    tree.fit_batch(X, y)

    X_query, _ = _stream(n_samples=25, seed=2)
    for x in X_query:
        expected = _mixture(tree, 0, x) / _subtree_weight(tree, 0)
        assert tree.predict(x) == pytest.approx(expected, rel=1e-10)


def test_prediction_does_not_modify_the_tree():
    tree = _make_tree()
    X, y = _stream(n_samples=30)
    tree.fit_batch(X, y)

    state = [(node.n_samples, node.weight, node.weight_tree, node.predict)
             for node in tree.nodes]

    tree.predict_batch(X, use_aggregation=True)
    tree.apply(X)

    assert tree.n_nodes == len(state)
    assert state == [(node.n_samples, node.weight, node.weight_tree, node.predict)
                     for node in tree.nodes]


def test_split_uses_only_features_that_differ():
    tree = _make_tree()
    X, y = _stream(n_samples=30)
    X[:, 1] = 0.25

    tree.fit_batch(X, y)

    assert all(node.feature != 1 for node in tree.nodes if not node.is_leaf)


def test_identical_sample_updates_the_leaf_without_splitting():
    tree = _make_tree()
    x0, x1 = np.array([0.0, 1.0]), np.array([1.0, 1.0])

    tree.fit(x0, 1.0)
    tree.fit(x1, 2.0)
    leaf = tree.apply(x1.reshape(1, -1))[0]

    tree.fit(x1.copy(), 3.0)

    assert tree.n_nodes == 3
    assert tree.iteration == 3
    assert tree.nodes[leaf].y_t == 3.0
    assert tree.nodes[leaf].n_samples == 2
    assert tree.nodes[leaf].predict == pytest.approx(2.5)
    assert tree.nodes[0].weight_tree == pytest.approx(
        (tree.nodes[0].weight + tree.nodes[1].weight_tree *
         tree.nodes[2].weight_tree) / 2)


def test_split_leaf_rejects_identical_samples():
    tree = _make_tree()
    tree.fit(np.array([0.5, 0.5]), 1.0)

    with pytest.raises(ValueError):
        tree.split_leaf(0, np.array([0.5, 0.5]), 2.0)


def test_depth_and_text_representation():
    tree = _make_tree()
    X, y = _stream(n_samples=3)
    tree.fit_batch(X, y)

    assert tree.depth(0) == 0
    assert tree.depth(1) == 1
    assert tree.depth(2) == 1
    assert tree.depth(4) == 2

    text = str(tree)
    assert text.startswith('Tree(nodes=5, iteration=3)')
    assert len(text.splitlines()) == 6


@pytest.mark.parametrize('seed', range(50))
def test_adjacent_values_route_back_to_their_own_leaves(seed):
    tree = _make_tree(seed=seed)
    x_above = np.array([np.nextafter(1.0, 2.0)])
    x_below = np.array([1.0])

    tree.fit(x_above, 1.0)
    tree.fit(x_below, 2.0)

    root = tree.nodes[0]
    assert x_below[0] <= root.threshold < x_above[0]
    assert tree.predict(x_above, use_aggregation=False) == 1.0
    assert tree.predict(x_below, use_aggregation=False) == 2.0


def test_threshold_never_reaches_the_upper_value():
    forest = OnlineForestRegressor(n_trees=1, seed=0)
    left, right = 1.0, np.nextafter(1.0, 2.0)

    for _ in range(200):
        assert left <= forest.sample_threshold(left, right) < right
