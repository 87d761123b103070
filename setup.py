# This file is part of OnlineForest.
#
# OnlineForest is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Lesser Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# OnlineForest is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Lesser Public License for more details.
#
# You should have received a copy of the GNU General Lesser Public License
# along with OnlineForest.  If not, see <http://www.gnu.org/licenses/>.

import os

from setuptools import setup, find_packages

if __name__ == '__main__':
    readme = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'README.rst')

    setup(
        name = 'OnlineForest',
        version = '0.0.1-alpha',
        description = ('Online random forest regression with context tree '
                       'weighting aggregation, trained in a single pass over '
                       'a stream of samples.'),
        long_description=open(readme, 'r').read(),
        keywords = 'machine learning, online learning, random forest, regression',
        packages=find_packages(exclude=['tests', 'tests.*']),
        python_requires='>=3.8',
        install_requires=['numpy',
                          'scipy',
                          'scikit-learn',
                          'joblib'],
        extras_require={'test': ['pytest']},
        license = 'GNU General Lesser Public License v3 or later (LGPLv3+)',
        classifiers=['Development Status :: 3 - Alpha',
                     'Environment :: Console',
                     'Intended Audience :: Science/Research',
                     'License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)',
                     'Operating System :: OS Independent',
                     'Programming Language :: Python :: 3',
                     'Topic :: Scientific/Engineering :: Artificial Intelligence']
    )
