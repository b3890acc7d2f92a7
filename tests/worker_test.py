import hashlib
import random
import string
import unittest

from neardup.simhash import FingerprintBuilder
from neardup.worker import ParallelFingerprintBuilder, Worker
from utils.config import Config


def make_config(**overrides):
    config = Config()
    for name, value in overrides.items():
        setattr(config, name, value)
    return config


class TestParallelFingerprintBuilder(unittest.TestCase):

    def setUp(self):
        random.seed(10)
        self.sequential = FingerprintBuilder()
        self.parallel = ParallelFingerprintBuilder(make_config(threads_count=3))

    def _random_text(self):
        words = ["".join(random.choices(string.ascii_letters, k=random.randint(1, 12)))
                 for _ in range(random.randint(20, 100))]
        return " ".join(words)

    def test_matches_sequential_builder(self):
        with self.subTest("Known value"):
            self.assertEqual(self.parallel.build(["aaa", "bbb"]).value, 57087923692560392)

        with self.subTest("Random texts"):
            for _ in range(10):
                text = self._random_text()
                self.assertEqual(self.parallel.build(text), self.sequential.build(text))

        with self.subTest("Heavy and light weights"):
            features = {f"f{i}": random.randint(1, 300) for i in range(1000)}
            self.assertEqual(self.parallel.build(features), self.sequential.build(features))

        with self.subTest("Empty input"):
            self.assertEqual(self.parallel.build({}).value, 0)

    def test_thread_counts(self):
        features = {f"f{i}": i % 4 + 1 for i in range(250)}
        expected = self.sequential.build(features)
        for threads_count in (1, 2, 8):
            with self.subTest(threads_count=threads_count):
                builder = ParallelFingerprintBuilder(make_config(threads_count=threads_count, batch_size=5))
                self.assertEqual(builder.build(features), expected)

    def test_wide_fingerprints(self):
        config = make_config(width=256, threads_count=4)
        digest = lambda data: hashlib.sha256(data).digest()
        text = self._random_text()
        self.assertEqual(
            ParallelFingerprintBuilder(config, digest=digest).build(text),
            FingerprintBuilder(config, digest=digest).build(text))

    def test_worker_factory(self):
        started = []

        class CountingWorker(Worker):
            def run(self):
                started.append(self.name)
                super().run()

        builder = ParallelFingerprintBuilder(make_config(threads_count=5), worker_factory=CountingWorker)
        builder.build("How are you? I AM fine. Thanks. And you?")
        self.assertEqual(len(started), 5)

    def test_worker_error_is_raised(self):
        def digest(data):
            if data == b"boom":
                raise ValueError("boom")
            return hashlib.md5(data).digest()

        features = {f"f{i}": 1 for i in range(500)}
        features["boom"] = 1
        builder = ParallelFingerprintBuilder(make_config(threads_count=2, batch_size=4), digest=digest)
        with self.assertRaises(ValueError):
            builder.build(features)

        # the builder is still usable afterwards
        del features["boom"]
        self.assertEqual(builder.build(features), FingerprintBuilder().build(features))

    def test_worker_stopping_without_result(self):
        class SilentWorker(Worker):
            # exits at once, never taking a task or posting a result
            def run(self):
                return

        def first_worker_silent(worker_id, builder, tasks, results):
            factory = SilentWorker if worker_id == 0 else Worker
            return factory(worker_id, builder, tasks, results)

        small = {"aaa": 1, "bbb": 1}
        large = {f"f{i}": 1 for i in range(100)}
        cases = [
            ("All workers silent, few features", SilentWorker, small),
            ("All workers silent, queue fills up", SilentWorker, large),
            ("One worker silent", first_worker_silent, large),
        ]
        for name, factory, features in cases:
            with self.subTest(name):
                builder = ParallelFingerprintBuilder(
                    make_config(threads_count=2, batch_size=4), worker_factory=factory)
                with self.assertRaises(RuntimeError):
                    builder.build(features)

    def test_worker_lifecycle_is_logged(self):
        builder = ParallelFingerprintBuilder(make_config(threads_count=1))
        with self.assertLogs("Worker-0", level="INFO") as logs:
            builder.build({"aaa": 1, "bbb": 1})
        self.assertIn("Processed 2 features. Stopping.", logs.output[-1])


if __name__ == "__main__":
    unittest.main()
