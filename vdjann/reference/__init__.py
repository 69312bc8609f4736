from .index import ReferenceIndex
from .library import ReferenceLibrary
from .segment import CHAIN_TYPES, ChainType, ReferenceSegment, SegmentType
