'''
edfplus is a package for reading and writing EDF+ biosignal recordings:
fixed-duration multiplexed data records of 16-bit samples together with
timestamped annotations stored in "EDF Annotations" channels
'''
import importlib.metadata
# this need to be at the begining because some sub module will need the version
__version__ = importlib.metadata.version("edfplus")

import logging

logging_handler = logging.StreamHandler()

from edfplus.core import *
from edfplus.io import *
