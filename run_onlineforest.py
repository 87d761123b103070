# -*- coding: utf-8 -*-

import numpy as np

import logging

from onlineforest import OnlineForestRegressor


# Turn on logging.
logging.basicConfig(format='%(asctime)s : %(threadName)s : %(levelname)s : '
                    '%(message)s', level=logging.INFO)

random_state = np.random.RandomState(42)

# A noisy stream of samples from a smooth regression function.
n_samples, n_features, batch_size = 2000, 2, 100

X = random_state.uniform(0.0, 1.0, size=(n_samples, n_features))
y = np.sin(2 * np.pi * X[:, 0]) * X[:, 1] + 0.1 * random_state.randn(n_samples)

X_test = random_state.uniform(0.0, 1.0, size=(500, n_features))
y_test = np.sin(2 * np.pi * X_test[:, 0]) * X_test[:, 1]

model = OnlineForestRegressor(n_trees=10, step=1.0, n_threads=-1,
                              seed=42, verbose=True)

logging.info('=' * 80)

# Feed the stream batch by batch, evaluating on the test samples
# before each batch is used for training (progressive validation).
for start in range(0, n_samples, batch_size):
    X_batch = X[start:start + batch_size]
    y_batch = y[start:start + batch_size]

    if model.iteration > 0:
        logging.info('#%06d: MSE (aggregation): %11.8f | MSE (leaf): %11.8f'
                     % (model.iteration,
                        model.evaluate(X_test, y_test, use_aggregation=True),
                        model.evaluate(X_test, y_test, use_aggregation=False)))

    model.fit(X_batch, y_batch)

logging.info('=' * 80)

logging.info('Model: %s' % model)
logging.info('Final MSE on the test samples: %11.8f'
             % model.evaluate(X_test, y_test))

model.save('OnlineForestRegressor_T%d_S%g' % (model.n_trees, model.step))
