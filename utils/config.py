from utils import get_digest, get_logger

DEFAULT_WIDTH = 64
DEFAULT_TOLERANCE = 2
DEFAULT_LARGE_WEIGHT_CUTOFF = 50
DEFAULT_BATCH_SIZE = 200
DEFAULT_SHINGLE_WIDTH = 4
DEFAULT_THREADS_COUNT = 4
DEFAULT_DIGEST = "md5"


class Config(object):
    """
    A class representing the fingerprinting and index configuration.

    Every builder and index receives one of these explicitly; nothing here is
    process-wide state.

    Attributes:
        width (int): The fingerprint width F in bits, a positive multiple of 8.
        tolerance (int): The index tolerance K, in differing bits.
        large_weight_cutoff (int): Weights above this skip the replicated batch.
        batch_size (int): Pending digests (and partial sums) folded per batch.
        shingle_width (int): Window size used by the default tokenizer.
        digest_name (str): The hashlib algorithm used per feature.
        digest (callable): The digest primitive resolved from digest_name.
        threads_count (int): The number of workers for parallel builds.
        log_dir (str): Directory for log files, None for console only.
    """
    def __init__(self, config=None):
        fingerprint = _section(config, "FINGERPRINT")
        index = _section(config, "INDEX")
        local = _section(config, "LOCAL PROPERTIES")

        self.log_dir = local.get("LOGDIR", "").strip() or None
        self.logger = get_logger("CONFIG", log_dir=self.log_dir)

        self.width = check_width(
            int(fingerprint.get("WIDTH", DEFAULT_WIDTH)), self.logger)
        self.large_weight_cutoff = int(
            fingerprint.get("LARGEWEIGHTCUTOFF", DEFAULT_LARGE_WEIGHT_CUTOFF))
        assert self.large_weight_cutoff > 0, "LARGEWEIGHTCUTOFF should be positive"
        self.batch_size = int(fingerprint.get("BATCHSIZE", DEFAULT_BATCH_SIZE))
        assert self.batch_size > 0, "BATCHSIZE should be positive"
        self.shingle_width = int(
            fingerprint.get("SHINGLEWIDTH", DEFAULT_SHINGLE_WIDTH))
        assert self.shingle_width > 0, "SHINGLEWIDTH should be positive"
        self.digest_name = fingerprint.get("DIGEST", DEFAULT_DIGEST).strip()
        self.digest = get_digest(self.digest_name)

        self.tolerance = int(index.get("TOLERANCE", DEFAULT_TOLERANCE))
        assert self.tolerance >= 0, "TOLERANCE should not be negative"

        self.threads_count = int(
            local.get("THREADCOUNT", DEFAULT_THREADS_COUNT))
        assert self.threads_count > 0, "THREADCOUNT should be positive"


def _section(config, name):
    if config is None or not config.has_section(name):
        return {}
    return config[name]


def check_width(width, logger=None):
    """
    Validate a fingerprint width, falling back to the default width.

    A width that is zero, negative or not a multiple of 8 is a configuration
    error. It is reported on the logger and replaced rather than raised.

    Args:
        width (int): The requested width in bits.
        logger (logging.Logger, optional): Where the diagnostic goes.

    Returns:
        int: The width to use.
    """
    if width <= 0 or width % 8 != 0:
        if logger:
            logger.error(
                f"Fingerprint width should be a positive multiple of 8, "
                f"got {width}. Using {DEFAULT_WIDTH}.")
        return DEFAULT_WIDTH
    return width
