# -*- coding: utf-8 -*-

__author__ = """analytics-python contributors"""

import os

ROOT = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(ROOT, 'VERSION')) as version_file:
    VERSION = version_file.read().strip()

from .client import Client  # noqa: E402
from .config import Options, get_options  # noqa: E402
from .dispatch import BatchingDispatcher, Statistics  # noqa: E402
from .models import Batch, Identify, Track  # noqa: E402

__all__ = [
    "VERSION",
    "Client",
    "Options",
    "get_options",
    "BatchingDispatcher",
    "Statistics",
    "Batch",
    "Identify",
    "Track",
]
