import warnings

from Bio import BiopythonWarning

warnings.simplefilter("ignore", BiopythonWarning)

from .annotation.annotator import annotate, annotate_contig, to_dataframe
from .core.vdjann import run
from .reference.library import ReferenceLibrary
from .version import __version__
