'''
Module containing the online regression tree grown one sample at a time,
whose predictions aggregate the nodes along the path of a sample with
context tree weighting.
'''

from .tree import Node
from .tree import Tree

__all__ = ['Node', 'Tree']
