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


import pickle as _pickle

import numpy as np
import scipy.sparse

from joblib import cpu_count

from sklearn.utils import check_array


def pickle(obj, filepath, protocol=-1):
    '''
    Pickle the object into the specified file.

    Parameters:
    -----------
    obj: object
        The object that should be serialized.

    filepath:
        The location of the resulting pickle file.
    '''
    with open(filepath, 'wb') as fout:
        _pickle.dump(obj, fout, protocol=protocol)


def unpickle(filepath):
    '''
    Unpicle the object serialized in the specified file.

    Parameters:
    -----------
    filepath:
        The location of the file to unpickle.
    '''
    with open(filepath, 'rb') as fin:
        return _pickle.load(fin)


def check_features(X):
    '''
    Convert the feature matrix into a dense C-contiguous 2d array
    of doubles. Sparse matrices are densified, since every tree
    node keeps a full copy of the sample it retains.
    '''
    if scipy.sparse.issparse(X):
        X = check_array(X, accept_sparse='csr', dtype=np.float64).toarray()

    return check_array(X, dtype=np.float64, order='C')


def check_labels(y, n_samples):
    '''
    Convert the labels into a contiguous 1d array of doubles
    and check it matches the number of samples.
    '''
    y = np.asarray(y)

    if y.ndim != 1:
        raise ValueError('y must be 1-d array')

    if len(y) != n_samples:
        raise ValueError('Number of labels (%d) does not match '
                         'number of samples (%d).' % (len(y), n_samples))

    y = np.ascontiguousarray(y, dtype=np.float64)

    if not np.all(np.isfinite(y)):
        raise ValueError('y contains NaN or infinity')

    return y


def parallel_helper(obj, methodname, *args, **kwargs):
    '''
    Helper function to avoid pickling problems when using Parallel loops.
    '''
    return getattr(obj, methodname)(*args, **kwargs)


def _get_n_jobs(n_jobs):
    '''
    Get number of jobs for the computation.

    This function reimplements the logic of joblib to determine the actual
    number of jobs depending on the cpu count:
        - If ``n_jobs`` is -1 all CPUs are used.
        - If ``n_jobs`` is greater than 0, ``n_jobs`` jobs is used.
        - If ``n_jobs`` is less than 0, ``n_cpus + n_jobs + 1`` jobs is used.
        - If ``n_jobs`` is 0, ``ValueError`` exception is raised.

    In all but last case, the returned number of jobs is at least 1 and
    at most the number of CPUs.

    Parameters
    ----------
    n_jobs : int
        The wanted number of jobs stated in joblib convention.

    Returns
    -------
    n_jobs : int
        The actual number of jobs as positive integer.
    '''
    if n_jobs < 0:
        return max(cpu_count() + 1 + n_jobs, 1)
    elif n_jobs == 0:
        raise ValueError('n_jobs == 0 has no meaning')
    else:
        return min(n_jobs, cpu_count())
