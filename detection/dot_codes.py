"""
Dot Code Table

Each page corner carries 7 colored dots. A valid code is any sequence of 7
color indexes that uses every color at least once, which makes the per-shape
color matching in ColorClassifier well defined. With 4 colors this yields
8400 codes, split into 4 equal blocks, one block per corner.
"""

from itertools import product
from typing import Dict, List, Optional, Sequence, Tuple


def generate_codes(num_colors: int = 4, length: int = 7) -> List[str]:
    """All sequences of `length` over `num_colors` using each color, lexicographic."""
    alphabet = [str(i) for i in range(num_colors)]
    return [''.join(seq) for seq in product(alphabet, repeat=length)
            if len(set(seq)) == num_colors]


CODES = generate_codes()
_CODE_INDEX: Dict[str, int] = {code: i for i, code in enumerate(CODES)}
NUM_IDS = len(CODES) // 4


def code_for(page_id: int, corner: int) -> str:
    """Code printed at `corner` of page `page_id`."""
    return CODES[corner * NUM_IDS + page_id]


def decode(color_indexes: Sequence[int]) -> Optional[Tuple[int, int]]:
    """Return (page_id, corner) for a color sequence, or None if unknown."""
    index = _CODE_INDEX.get(''.join(str(c) for c in color_indexes))
    if index is None:
        return None
    return index % NUM_IDS, index // NUM_IDS
