from collections.abc import Iterable, Mapping
from functools import partial

import numpy as np

from neardup.tokenize import count_features, tokenize
from utils import get_logger
from utils.config import Config, DEFAULT_WIDTH, check_width

logger = get_logger("SIMHASH")


class DimensionMismatchError(ValueError):
    """Raised when fingerprints of different widths are compared."""


class Fingerprint(object):
    """
    An immutable F-bit simhash value.

    Attributes:
        value (int): The fingerprint bits as an unsigned integer.
        width (int): The number of bits F, a positive multiple of 8.
    """
    __slots__ = ("_value", "_width")

    def __init__(self, value, width=DEFAULT_WIDTH):
        width = check_width(width, logger)
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Fingerprint value should be an int, got {type(value).__name__}")
        if value < 0 or value >> width:
            raise ValueError(f"Fingerprint value {value} does not fit in {width} bits")
        self._value = value
        self._width = width

    @property
    def value(self):
        return self._value

    @property
    def width(self):
        return self._width

    @property
    def width_bytes(self):
        return self._width // 8

    @classmethod
    def from_bytes(cls, data, width=None):
        """
        Rebuild a fingerprint from its big-endian byte form.

        Args:
            data (bytes): The packed fingerprint.
            width (int, optional): The width in bits, defaults to 8 * len(data).

        Returns:
            Fingerprint: The unpacked fingerprint.
        """
        if width is None:
            width = len(data) * 8
        elif len(data) != width // 8:
            raise ValueError(f"Expected {width // 8} bytes for a {width} bit fingerprint, got {len(data)}")
        return cls(int.from_bytes(data, "big"), width)

    def to_bytes(self):
        """Pack the value into width / 8 big-endian bytes."""
        return self._value.to_bytes(self.width_bytes, "big")

    def hex(self):
        return "%x" % self._value

    def _check_width(self, other):
        if self._width != other.width:
            raise DimensionMismatchError(
                f"Fingerprints must have the same width, got {self._width} and {other.width}")

    def distance(self, other):
        """
        Hamming distance to another fingerprint of the same width.

        Raises:
            DimensionMismatchError: If the widths differ.
        """
        self._check_width(other)
        x = (self._value ^ other.value) & ((1 << self._width) - 1)
        return bin(x).count("1")

    def similarity(self, other):
        """Fraction of agreeing bits, 1.0 for identical fingerprints."""
        return 1 - self.distance(other) / float(self._width)

    def equal(self, other):
        """Strict equality, raising on a width mismatch instead of answering False."""
        self._check_width(other)
        return self._value == other.value

    def __eq__(self, other):
        if not isinstance(other, Fingerprint):
            return NotImplemented
        return self._width == other.width and self._value == other.value

    def __hash__(self):
        return hash((self._width, self._value))

    def __int__(self):
        return self._value

    def __repr__(self):
        return f"Fingerprint(0x{self.hex()}, width={self._width})"


def hamming_distance(a, b):
    return a.distance(b)


def similarity(a, b):
    return a.similarity(b)


def bitarray_from_bytes(data):
    """Expand bytes into an array of bits, most significant bit first."""
    return np.unpackbits(np.frombuffer(data, dtype=">B"))


def sum_hashes(digests, width):
    """Column-wise bit counts over a batch of width-bit digests."""
    rows = np.reshape(bitarray_from_bytes(b"".join(digests)), (-1, width))
    return np.sum(rows, axis=0, dtype=np.int64)


class FingerprintBuilder(object):
    """
    Reduces a weighted bag of features to one Fingerprint by a per-bit
    majority vote over the feature digests.

    Repeated digests are replicated into a pending batch and folded into
    partial sums every batch_size digests; the partial sums themselves are
    collapsed once there are batch_size of them. Features heavier than
    large_weight_cutoff are scaled directly instead of being replicated.

    Attributes:
        config (Config): The configuration the builder was created from.
        width (int): The fingerprint width F.
        digest (callable): bytes -> bytes primitive, at least F / 8 bytes long.
        tokenizer (callable): text -> list of feature tokens.
    """
    def __init__(self, config=None, digest=None, tokenizer=None, logger=None):
        self.config = config if config is not None else Config()
        self.logger = logger or get_logger("BUILDER", log_dir=self.config.log_dir)
        self.width = check_width(self.config.width, self.logger)
        self.width_bytes = self.width // 8
        self.large_weight_cutoff = self.config.large_weight_cutoff
        self.batch_size = self.config.batch_size
        self.digest = digest or self.config.digest
        self.tokenizer = tokenizer or partial(tokenize, width=self.config.shingle_width)

    def build(self, value):
        """
        Build a fingerprint from any supported input.

        Args:
            value: A Fingerprint (copied), a str (tokenized), a mapping of
                feature -> weight, an iterable of distinct features (weight 1
                each) or of (feature, weight) pairs (weights summed), or an int
                taken as the raw fingerprint value.

        Returns:
            Fingerprint: The fingerprint.
        """
        if isinstance(value, Fingerprint):
            return Fingerprint(value.value, value.width)
        if isinstance(value, str):
            return self.build_by_text(value)
        if isinstance(value, Mapping):
            return self.build_by_features(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return Fingerprint(value, self.width)
        if isinstance(value, Iterable):
            items = list(value)
            if all(isinstance(item, str) for item in items):
                # plain tokens each weigh 1, however often they repeat
                return self.build_by_features(dict.fromkeys(items, 1))
            return self.build_by_features(count_features(items))
        raise TypeError(f"Cannot build a fingerprint from {type(value).__name__}")

    def build_by_text(self, text):
        return self.build_by_features(count_features(self.tokenizer(text)))

    def feature_hash(self, feature):
        """The low width / 8 bytes of the feature's digest."""
        hashed = self.digest(feature.encode("utf-8"))
        if len(hashed) < self.width_bytes:
            raise ValueError(
                f"Digest returned {len(hashed)} bytes, need at least {self.width_bytes} "
                f"for {self.width} bit fingerprints")
        return hashed[-self.width_bytes:]

    def feature_vector(self, feature, weight):
        """The feature's bit array scaled by its weight."""
        return bitarray_from_bytes(self.feature_hash(feature)).astype(np.int64) * weight

    def build_by_features(self, features):
        """
        Build a fingerprint from a feature -> weight mapping.

        Args:
            features (Mapping): Positive integer weights keyed by feature token.

        Returns:
            Fingerprint: The fingerprint, 0 for an empty mapping.
        """
        sums = []
        batch = []
        pending = 0
        count = 0
        for feature, weight in features.items():
            count += weight
            if weight > self.large_weight_cutoff:
                sums.append(self.feature_vector(feature, weight))
            else:
                batch.append(self.feature_hash(feature) * weight)
                pending += weight
                if pending >= self.batch_size:
                    sums.append(sum_hashes(batch, self.width))
                    batch = []
                    pending = 0

            if len(sums) >= self.batch_size:
                sums = [np.sum(sums, axis=0)]

        if batch:
            sums.append(sum_hashes(batch, self.width))
        return self.reduce(sums, count)

    def reduce(self, sums, count):
        """
        Combine partial sums and apply the majority threshold.

        A bit is set only when strictly more than half of the total weight
        voted for it.

        Args:
            sums (list): Partial per-bit vote vectors.
            count (int): The total weight of all features.

        Returns:
            Fingerprint: The fingerprint.
        """
        if not sums:
            return Fingerprint(0, self.width)
        combined = np.sum(sums, axis=0)
        bits = np.packbits(combined > count // 2)
        return Fingerprint(int.from_bytes(bits.tobytes(), "big"), self.width)
