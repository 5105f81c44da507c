"""
Small NPL-format collection shared by the ingest, retrieval and sweep tests.
"""

import os

DOC_TEXT = """1
the ultrasonic waves in crystals
   /
2
radio propagation in the ionosphere
   /
3
crystal lattice vibrations and ultrasonic attenuation
   /
4
ionosphere electron density measurements
   /
"""

QUERY_TEXT = """1
ULTRASONIC crystals
   /
2
Ionosphere propagation
   /
3
electron density
   /
4
lattice vibrations
   /
"""

RLV_ASS = """1
 1 3
   /
2
 2
 4
   /
3
 4
   /
4
 3
   /
"""


def write_collection(directory):
    """Write doc-text, query-text and rlv-ass into ``directory``; return their paths."""
    paths = {}
    for name, content in (("doc-text", DOC_TEXT), ("query-text", QUERY_TEXT), ("rlv-ass", RLV_ASS)):
        path = os.path.join(directory, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        paths[name] = path
    return paths
