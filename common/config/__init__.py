"""Configuration module - re-exports all config values."""
from .paths import *
from .cycle import *
from .redis import *
