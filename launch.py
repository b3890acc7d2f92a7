from configparser import ConfigParser
from argparse import ArgumentParser

from utils.config import Config
from neardup import NearDupDetector, ParallelFingerprintBuilder, FingerprintBuilder
from neardup.loader import load_documents


def main(config_file, path, parallel=False):
    """
    Index every document under path and print its near-duplicates.

    Args:
        config_file (str): Path to the configuration file.
        path (str): A document or a directory of documents.
        parallel (bool): Whether to fingerprint with a worker pool.
    """
    cparser = ConfigParser()
    cparser.read(config_file)
    config = Config(cparser)
    builder_factory = ParallelFingerprintBuilder if parallel else FingerprintBuilder
    detector = NearDupDetector(config, builder_factory=builder_factory)

    fingerprints = {}
    for doc_id, text in load_documents(path):
        fingerprints[doc_id] = detector.add(doc_id, text)
    detector.logger.info(
        f"Indexed {len(fingerprints)} documents into "
        f"{detector.index.bucket_size()} buckets.")

    for doc_id, fingerprint in fingerprints.items():
        dups = sorted(d for d in detector.index.get_near_dups(fingerprint) if d != doc_id)
        print(f"{fingerprint.hex():>{config.width // 4}} {doc_id}")
        for dup in dups:
            distance = fingerprint.distance(fingerprints[dup])
            print(f"{'':>{config.width // 4}}   ~ {dup} ({distance} bits)")


if __name__ == "__main__":
    parser = ArgumentParser()
    parser.add_argument("path", type=str)
    parser.add_argument("--config_file", type=str, default="config.ini")
    parser.add_argument("--parallel", action="store_true", default=False)
    args = parser.parse_args()
    main(args.config_file, args.path, args.parallel)
