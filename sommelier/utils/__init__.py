from .logger import logger
from .utils import *
