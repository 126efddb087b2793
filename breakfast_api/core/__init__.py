"""
Core domain module

Models, error categories and aggregation for breakfast check-ins.
"""
from . import exceptions
from . import models
from . import stats

__all__ = ['exceptions', 'models', 'stats']
