"""
lifelog.core
============

Ambient building blocks shared by the server: configuration, logging, error
classification, the database pool and the common pydantic base model.
"""

from lifelog.core.common import AppBaseModel, transform

__all__ = ["AppBaseModel", "transform"]
