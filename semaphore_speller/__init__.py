"""
Arm Semaphore Speller

Spells words from arm poses: each arm's pointing direction is read as a
clock position, the pair of positions selects a letter, and letters held
long enough are added to the word.
"""

__version__ = "1.0.0"

from . import utils
from . import pose
from . import classify
from . import spelling
