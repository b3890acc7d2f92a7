from collections import Counter

from nltk.tokenize import RegexpTokenizer
from nltk.util import ngrams

# letters, digits, underscore and the CJK unified ideographs block
DEFAULT_PATTERN = r"[\w\u4e00-\u9fcc]+"

_default_tokenizer = RegexpTokenizer(DEFAULT_PATTERN)


def tokenize(text, width=4, pattern=None):
    """
    Split text into overlapping character shingles.

    The text is lower-cased, everything that is not a letter, digit,
    underscore or CJK character is dropped, and a window of `width`
    characters is slid across what remains.

    Parameters:
        text (str): raw text
        width (int): shingle width
        pattern (str): regex describing the characters to keep

    Returns:
        list: shingles in order of appearance; the whole filtered text when it
            is shorter than `width`, so empty text yields a single "" shingle
    """
    regexp = RegexpTokenizer(pattern) if pattern else _default_tokenizer
    content = "".join(regexp.tokenize(text.lower()))
    if len(content) < width:
        return [content]
    return ["".join(gram) for gram in ngrams(content, width)]


def count_features(tokens):
    """
    Turn tokens into a weighted feature mapping.

    Parameters:
        tokens (iterable): feature strings, each counted once per occurrence,
            or (feature, weight) pairs whose weights are summed

    Returns:
        Counter: feature -> weight
    """
    counts = Counter()
    for token in tokens:
        if isinstance(token, str):
            counts[token] += 1
        else:
            feature, weight = token
            counts[feature] += weight
    return counts
