import os
import logging
import hashlib


def get_logger(name, filename=None, log_dir=None):
    """
    Create a logger with the specified name and optional log file.

    Handlers are attached only the first time a given name is requested, so
    builders and indexes created repeatedly share one set of handlers.

    Args:
        name (str): The name of the logger.
        filename (str, optional): The filename for the log file. Defaults to the
            logger name.
        log_dir (str, optional): Directory for the log file. When None only the
            console handler is attached.

    Returns:
        logger (logging.Logger): A configured logger instance.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(
       "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    if log_dir:
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        fh = logging.FileHandler(
            os.path.join(log_dir, f"{filename if filename else name}.log"))
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch.setFormatter(formatter)
    logger.addHandler(ch)
    return logger


def md5_digest(data):
    """
    Default digest primitive: the 16 byte MD5 digest of the given bytes.

    Args:
        data (bytes): The bytes to hash.

    Returns:
        bytes: The MD5 digest.
    """
    return hashlib.md5(data).digest()


def get_digest(name):
    """
    Look up a hashlib algorithm by name and wrap it as a digest primitive.

    Args:
        name (str): A hashlib algorithm name, e.g. "md5" or "sha256".

    Returns:
        callable: A function taking bytes and returning the digest bytes.

    Raises:
        ValueError: If hashlib does not know the algorithm.
    """
    name = name.strip().lower()
    if name == "md5":
        return md5_digest
    if name not in hashlib.algorithms_available or name.startswith("shake"):
        raise ValueError(f"Unknown digest algorithm {name!r}")

    def digest(data):
        return hashlib.new(name, data).digest()

    digest.__name__ = f"{name}_digest"
    return digest
