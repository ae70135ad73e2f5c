"""
Text normalization for indexing and querying.

Folds accents, case and a handful of ligatures so that "Ærøskøbing",
"aerOskobing" and similar spellings compare equal.
"""

import unicodedata

# Standalone combining marks removed after decomposition
COMBINING_MARKS = (
    "\u0300",  # grave
    "\u0301",  # acute
    "\u0302",  # circumflex
    "\u0303",  # tilde
    "\u0304",  # macron
    "\u0306",  # breve
    "\u0307",  # dot above
    "\u0308",  # diaeresis
    "\u0309",  # hook above
    "\u030a",  # ring above
    "\u030b",  # double acute
    "\u030c",  # caron
    "\u031b",  # horn
    "\u0323",  # dot below
    "\u0326",  # comma below
    "\u0327",  # cedilla
    "\u0328",  # ogonek
)

# Lower-case ligatures that NFKD leaves intact
LIGATURES = {
    "\u00e6": "ae",
    "\u0133": "ij",
    "\u0153": "oe",
    "\u00df": "ss",
}

_TRANSLATION = str.maketrans({
    **{mark: None for mark in COMBINING_MARKS},
    **LIGATURES,
})


def normalize(text: str) -> str:
    """
    Fold text to its canonical comparison form.

    NFKD decomposition turns precomposed letters into base + mark pairs,
    the text is lower-cased, then the marks are dropped and ligatures
    expanded.
    """
    return unicodedata.normalize("NFKD", text).lower().translate(_TRANSLATION)
