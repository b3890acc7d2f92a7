from utils import get_logger
from utils.config import Config
from neardup.simhash import (
    DimensionMismatchError, Fingerprint, FingerprintBuilder, hamming_distance,
    similarity)
from neardup.index import LockedSimhashIndex, SimhashIndex
from neardup.worker import ParallelFingerprintBuilder, Worker

__all__ = [
    "Config", "DimensionMismatchError", "Fingerprint", "FingerprintBuilder",
    "LockedSimhashIndex", "NearDupDetector", "ParallelFingerprintBuilder",
    "SimhashIndex", "Worker", "hamming_distance", "similarity",
]


class NearDupDetector(object):
    def __init__(self, config=None, builder_factory=FingerprintBuilder, index_factory=SimhashIndex.from_config):
        """
        This class ties a fingerprint builder and a near-duplicate index
        together so that raw inputs can be added and queried directly.

        Args:
            config (Config, optional): The configuration shared by the builder
                and the index. A default Config is used when omitted.
            builder_factory (func, optional): Creates the builder from the
                config. The default is FingerprintBuilder.
            index_factory (func, optional): Creates the index from the config.
                The default is SimhashIndex.from_config.

        Attributes:
            config (Config): The shared configuration.
            logger (Logger): A logger instance for logging messages.
            builder (FingerprintBuilder): Turns inputs into fingerprints.
            index (SimhashIndex): Holds the added fingerprints.

        """
        self.config = config if config is not None else Config()
        self.logger = get_logger("DETECTOR", log_dir=self.config.log_dir)
        self.builder = builder_factory(self.config)
        self.index = index_factory(self.config)

    def fingerprint(self, value):
        """
        Build the fingerprint of a value.

        Args:
            value: Text, a feature mapping, a feature list, an int or a
                Fingerprint, as accepted by FingerprintBuilder.build.

        Returns:
            Fingerprint

        """
        return self.builder.build(value)

    def add(self, obj_id, value):
        """
        Fingerprint a value and add it to the index under obj_id.

        Returns:
            Fingerprint: The fingerprint that was indexed.

        """
        fingerprint = self.fingerprint(value)
        self.index.add(obj_id, fingerprint)
        self.logger.debug(f"Added {obj_id} as {fingerprint!r}.")
        return fingerprint

    def delete(self, obj_id, value):
        """
        Remove the entry obj_id was added with for the given value.
        """
        self.index.delete(obj_id, self.fingerprint(value))

    def get_near_dups(self, value):
        """
        Find the ids of indexed entries near the value's fingerprint.

        Returns:
            list: obj_ids within the configured tolerance.

        """
        return self.index.get_near_dups(self.fingerprint(value))
