from queue import Empty, Full, Queue
from threading import Thread

import numpy as np

from neardup.simhash import FingerprintBuilder
from utils import get_logger


class Worker(Thread):
    """
    The Worker class is a subclass of Thread that takes (feature, weight) tasks
    from a shared queue and folds each feature's weighted bit vector into its
    own partial sum. Each Worker instance runs concurrently in a separate thread.

    Attributes:
        builder (FingerprintBuilder): Computes the per-feature vectors.
        tasks (Queue): Incoming (feature, weight) tasks, None to stop.
        results (Queue): Receives one (partial_sum, error) pair when stopping.
    """

    def __init__(self, worker_id, builder, tasks, results):
        """
        Initialize the Worker with the given worker_id, builder and queues.

        Args:
            worker_id (int): A unique identifier for the worker.
            builder (FingerprintBuilder): The builder whose digest and width are used.
            tasks (Queue): The task queue shared by all workers.
            results (Queue): The queue partial sums are posted to.
        """
        self.logger = get_logger(f"Worker-{worker_id}", "WORKER", log_dir=builder.config.log_dir)
        self.builder = builder
        self.tasks = tasks
        self.results = results
        super().__init__(daemon=True)

    def run(self):
        """
        Consume tasks until the stop sentinel. After a failure the remaining
        tasks are still drained so the producer never blocks on a full queue.
        """
        partial = np.zeros(self.builder.width, dtype=np.int64)
        error = None
        processed = 0
        while True:
            task = self.tasks.get()
            if task is None:
                break
            if error is not None:
                continue
            feature, weight = task
            try:
                partial += self.builder.feature_vector(feature, weight)
                processed += 1
            except Exception as e:
                self.logger.error(f"Error while hashing feature {feature!r}: {str(e)}")
                error = e
        self.logger.info(f"Processed {processed} features. Stopping.")
        self.results.put((partial, error))


class ParallelFingerprintBuilder(FingerprintBuilder):
    """
    FingerprintBuilder that fans the per-feature work out to a pool of
    Workers and reduces their partial sums after all of them have joined.
    Produces the same fingerprints as the sequential builder.
    """

    def __init__(self, config=None, digest=None, tokenizer=None, logger=None, worker_factory=Worker):
        super().__init__(config, digest=digest, tokenizer=tokenizer, logger=logger)
        self.threads_count = self.config.threads_count
        self.worker_factory = worker_factory

    def _put(self, tasks, item, workers):
        """Queue an item, giving up once no worker is left to take it."""
        while True:
            try:
                tasks.put(item, timeout=0.1)
                return True
            except Full:
                if not any(worker.is_alive() for worker in workers):
                    return False

    def build_by_features(self, features):
        tasks = Queue(maxsize=self.batch_size)
        results = Queue()
        workers = [
            self.worker_factory(worker_id, self, tasks, results)
            for worker_id in range(self.threads_count)]
        for worker in workers:
            worker.start()

        count = 0
        try:
            for feature, weight in features.items():
                count += weight
                if not self._put(tasks, (feature, weight), workers):
                    raise RuntimeError("All workers stopped before every feature was queued")
        finally:
            for _ in workers:
                if not self._put(tasks, None, workers):
                    break
            for worker in workers:
                worker.join()

        sums = []
        for _ in workers:
            try:
                partial, error = results.get_nowait()
            except Empty:
                raise RuntimeError(
                    f"{len(workers) - len(sums)} of {len(workers)} workers stopped without a result")
            if error is not None:
                raise error
            sums.append(partial)
        return self.reduce(sums, count)
