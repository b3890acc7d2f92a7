from threading import RLock

from neardup.simhash import Fingerprint
from utils import get_logger
from utils.config import DEFAULT_TOLERANCE, DEFAULT_WIDTH, check_width

BIG_BUCKET = 200


class SimhashIndex(object):
    """
    Near-duplicate index over (obj_id, Fingerprint) entries.

    The f bits of a fingerprint are cut into k + 1 contiguous ranges and each
    range, tagged with its position, is one bucket key. Two fingerprints
    within distance k agree on at least one whole range, so they always share
    a bucket; candidates found through the buckets are rechecked by exact
    distance.

    Entries whose width differs from f are ignored by add, delete and
    get_near_dups. This is deliberate and unlike Fingerprint.distance, which
    raises on a width mismatch.

    Attributes:
        f (int): The fingerprint width every entry must have.
        k (int): The tolerance in differing bits.
        bucket (dict): bucket key -> set of "hex(value),obj_id" entries.
    """
    def __init__(self, objs=(), f=DEFAULT_WIDTH, k=DEFAULT_TOLERANCE, logger=None):
        """
        Args:
            objs (iterable): (obj_id, Fingerprint) pairs to add.
            f (int): The fingerprint width.
            k (int): The tolerance.
            logger (logging.Logger, optional): Logger for diagnostics.
        """
        self.logger = logger or get_logger("INDEX")
        if k < 0:
            raise ValueError("k should not be negative")
        self.f = check_width(f, self.logger)
        self.k = k
        self.bucket = {}

        count = 0
        for obj_id, fingerprint in objs:
            self.add(obj_id, fingerprint)
            count += 1
        if count:
            self.logger.info(f"Initialized index with {count} objects.")

    @classmethod
    def from_config(cls, config, objs=(), logger=None):
        logger = logger or get_logger("INDEX", log_dir=config.log_dir)
        return cls(objs, f=config.width, k=config.tolerance, logger=logger)

    @property
    def offsets(self):
        chunk = self.f // (self.k + 1)
        return [chunk * i for i in range(self.k + 1)]

    def get_keys(self, fingerprint):
        """
        The k + 1 bucket keys of a fingerprint.

        The last range runs to bit f and absorbs the remainder of f / (k + 1).
        """
        offsets = self.offsets
        keys = []
        for i, offset in enumerate(offsets):
            if i == len(offsets) - 1:
                m = (1 << (self.f - offset)) - 1
            else:
                m = (1 << (offsets[i + 1] - offset)) - 1
            c = fingerprint.value >> offset & m
            keys.append("%x:%x" % (c, i))
        return keys

    def _accepts(self, fingerprint, action):
        if fingerprint is None or fingerprint.width != self.f:
            self.logger.debug(
                f"Ignoring {action} for {fingerprint!r}, index width is {self.f}.")
            return False
        return True

    def add(self, obj_id, fingerprint):
        """
        Add an entry to all of its buckets. Adding it again changes nothing.

        Args:
            obj_id (str): Caller-assigned identifier.
            fingerprint (Fingerprint): The entry's fingerprint.
        """
        if not self._accepts(fingerprint, "add"):
            return
        entry = "%x,%s" % (fingerprint.value, obj_id)
        for key in self.get_keys(fingerprint):
            self.bucket.setdefault(key, set()).add(entry)

    def delete(self, obj_id, fingerprint):
        """
        Remove an entry from its buckets, dropping buckets left empty.
        Deleting an absent entry changes nothing.
        """
        if not self._accepts(fingerprint, "delete"):
            return
        entry = "%x,%s" % (fingerprint.value, obj_id)
        for key in self.get_keys(fingerprint):
            entries = self.bucket.get(key)
            if entries is None:
                continue
            entries.discard(entry)
            if not entries:
                del self.bucket[key]

    def get_near_dups(self, fingerprint):
        """
        Find the ids of entries within distance k of a fingerprint.

        Args:
            fingerprint (Fingerprint): The query.

        Returns:
            list: Matching obj_ids, each once, in no particular order.
        """
        if not self._accepts(fingerprint, "query"):
            return []
        ans = set()
        for key in self.get_keys(fingerprint):
            dups = self.bucket.get(key, ())
            if len(dups) >= BIG_BUCKET:
                self.logger.warning(f"Big bucket found. key:{key}, len:{len(dups)}")
            for dup in dups:
                value, obj_id = dup.split(",", 1)
                candidate = Fingerprint(int(value, 16), self.f)
                if fingerprint.distance(candidate) <= self.k:
                    ans.add(obj_id)
        return list(ans)

    def bucket_size(self):
        """The number of non-empty buckets."""
        return len(self.bucket)


class LockedSimhashIndex(SimhashIndex):
    """
    SimhashIndex guarded by one re-entrant lock, for sharing between threads.
    """
    def __init__(self, objs=(), f=DEFAULT_WIDTH, k=DEFAULT_TOLERANCE, logger=None):
        self.lock = RLock()
        super().__init__(objs, f=f, k=k, logger=logger)

    def add(self, obj_id, fingerprint):
        with self.lock:
            super().add(obj_id, fingerprint)

    def delete(self, obj_id, fingerprint):
        with self.lock:
            super().delete(obj_id, fingerprint)

    def get_near_dups(self, fingerprint):
        with self.lock:
            return super().get_near_dups(fingerprint)

    def bucket_size(self):
        with self.lock:
            return len(self.bucket)
