import io
import os
import tempfile
import unittest
from configparser import ConfigParser
from contextlib import redirect_stdout

import launch
from neardup import (
    Fingerprint, LockedSimhashIndex, NearDupDetector, ParallelFingerprintBuilder)
from utils.config import Config


def tolerance_config(k):
    cparser = ConfigParser()
    cparser.read_dict({"INDEX": {"TOLERANCE": str(k)}, "LOCAL PROPERTIES": {"THREADCOUNT": "2"}})
    return Config(cparser)


class TestNearDupDetector(unittest.TestCase):
    def setUp(self):
        self.detector = NearDupDetector(tolerance_config(10))
        self.detector.add("1", "How are you? I Am fine. blar blar blar blar blar Thanks.")
        self.detector.add("2", "How are you i am fine. blar blar blar blar blar than")
        self.detector.add("3", "This is simhash test.")
        self.detector.add("4", "How are you i am fine. blar blar blar blar blar thank1")
        self.query = "How are you i am fine.ablar ablar xyz blar blar blar blar blar blar blar thank"

    def test_get_near_dups(self):
        self.assertEqual(sorted(self.detector.get_near_dups(self.query)), ["1", "2", "4"])

    def test_delete(self):
        self.detector.delete("2", "How are you i am fine. blar blar blar blar blar than")
        self.assertEqual(sorted(self.detector.get_near_dups(self.query)), ["1", "4"])

    def test_add_returns_fingerprint(self):
        fp = self.detector.add("5", {"aaa": 1, "bbb": 1})
        self.assertEqual(fp, Fingerprint(57087923692560392))
        self.assertIn("5", self.detector.get_near_dups(["aaa", "bbb"]))

    def test_factories(self):
        detector = NearDupDetector(
            tolerance_config(3),
            builder_factory=ParallelFingerprintBuilder,
            index_factory=lambda config: LockedSimhashIndex(f=config.width, k=config.tolerance))
        self.assertIsInstance(detector.index, LockedSimhashIndex)
        self.assertEqual(detector.index.k, 3)
        detector.add("a", "the quick brown fox jumps over the lazy dog")
        self.assertEqual(detector.get_near_dups("The quick brown fox jumps over the lazy dog!"), ["a"])

    def test_default_config(self):
        detector = NearDupDetector()
        self.assertEqual(detector.index.k, 2)
        self.assertEqual(detector.builder.width, 64)


class TestLaunch(unittest.TestCase):
    def test_main(self):
        with tempfile.TemporaryDirectory() as root:
            docs = {
                "a.txt": "How are you? I Am fine. blar blar blar blar blar Thanks.",
                "b.txt": "How are you? I Am fine. blar blar blar blar blar Thanks.",
                "c.html": "<html><body><p>This is simhash test.</p></body></html>",
            }
            docs_dir = os.path.join(root, "docs")
            os.makedirs(docs_dir)
            for name, content in docs.items():
                with open(os.path.join(docs_dir, name), "w", encoding="utf-8") as f:
                    f.write(content)
            config_file = os.path.join(root, "neardup.ini")
            with open(config_file, "w", encoding="utf-8") as f:
                f.write("[INDEX]\nTOLERANCE = 3\n")

            for parallel in (False, True):
                with self.subTest(parallel=parallel):
                    out = io.StringIO()
                    with redirect_stdout(out):
                        launch.main(config_file, docs_dir, parallel)
                    output = out.getvalue()
                    self.assertIn("~ b.txt (0 bits)", output)
                    self.assertIn("~ a.txt (0 bits)", output)
                    self.assertNotIn("~ c.html", output)
                    self.assertIn("c.html", output)


if __name__ == "__main__":
    unittest.main()
