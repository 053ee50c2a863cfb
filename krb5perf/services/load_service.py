"""
Load generation service.

Drives a fixed number of authentication attempts through a bounded
producer/worker/collector pipeline:

    dispatcher -> job queue -> N workers -> result queue -> aggregator

The dispatcher runs on its own thread so a job queue smaller than the
iteration count only applies backpressure instead of deadlocking the
collector. Workers are plain threads: they spend nearly all their time
blocked inside the authentication call, so running many more workers than
CPU cores is expected.

Every queue wait polls a shared cancel event. The event is set on Ctrl-C or
when a worker hits a PreconditionFailure; in both cases the run stops and no
summary is produced.
"""

import queue
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from krb5perf.core.exceptions import AuthenticationFailure, PreconditionFailure, RunCancelled
from krb5perf.core.interfaces import AuthResult, IAuthenticator, Job, RunSummary
from krb5perf.core.rotator import CredentialRotator
from krb5perf.services.aggregation_service import Aggregator
from krb5perf.utils.logger import Logger
from krb5perf.utils.stats import format_duration


POLL_INTERVAL = 0.1       # Seconds between cancel checks while blocked on a queue
ABORT_JOIN_TIMEOUT = 1.0  # Total seconds to wait for threads after an abort

_CLOSE = object()         # Sentinel telling a worker no more jobs will come


class PoolState(Enum):
    """Lifecycle of the worker pool."""
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class LoadService:
    """
    Runs one benchmark: dispatch, concurrent execution, aggregation.

    Example:
        >>> service = LoadService(authenticator, rotator, "krbtgt/EXAMPLE.COM",
        ...                       iterations=1000, parallelism=50)
        >>> summary = service.run()
        >>> summary.success_count + summary.failure_count
        1000
    """

    def __init__(
        self,
        authenticator: IAuthenticator,
        rotator: CredentialRotator,
        target_service: str,
        iterations: int,
        parallelism: int,
        queue_size: int = 0,
        logger: Optional[Logger] = None,
        verbose: bool = False,
        on_result: Optional[Callable[[AuthResult], None]] = None,
        clock: Callable[[], float] = time.perf_counter
    ):
        """
        Initialize the load service.

        Args:
            authenticator: Backend handing out per-call sessions
            rotator: Round-robin source of credentials
            target_service: Service principal every attempt targets
            iterations: Total number of attempts
            parallelism: Number of concurrent workers
            queue_size: Capacity of both queues (0 = iterations)
            logger: Logger instance
            verbose: Log every attempt as it completes
            on_result: Called on the collecting thread for each result
            clock: Monotonic clock in seconds used for every measurement
        """
        if iterations < 1:
            raise ValueError("iterations must be at least 1")
        if parallelism < 1:
            raise ValueError("parallelism must be at least 1")

        self.authenticator = authenticator
        self.rotator = rotator
        self.target_service = target_service
        self.iterations = iterations
        self.parallelism = parallelism
        self.queue_size = queue_size if queue_size > 0 else iterations
        self.logger = logger or Logger()
        self.verbose = verbose
        self.on_result = on_result
        self.clock = clock

        self.state = PoolState.IDLE
        self.start_time: Optional[datetime] = None
        self._start_counter: Optional[float] = None

        self._jobs: queue.Queue = queue.Queue(maxsize=self.queue_size)
        self._results: queue.Queue = queue.Queue(maxsize=self.queue_size)
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._fatal: Optional[PreconditionFailure] = None
        self._threads: List[threading.Thread] = []

    # ------------------------------------------------------------------
    # Queue helpers
    # ------------------------------------------------------------------

    def _put(self, q: queue.Queue, item) -> bool:
        """Blocking put that gives up (returns False) once the run is cancelled."""
        while not self._cancel.is_set():
            try:
                q.put(item, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _get(self, q: queue.Queue):
        """Blocking get that returns None once the run is cancelled."""
        while not self._cancel.is_set():
            try:
                return q.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
        return None

    def _set_state(self, state: PoolState) -> None:
        with self._lock:
            self.state = state

    def _fail(self, error: PreconditionFailure) -> None:
        """Record the first fatal error and stop the run."""
        with self._lock:
            if self._fatal is None:
                self._fatal = error
        self._cancel.set()

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _dispatch(self) -> None:
        """Enqueue one job per iteration, then one close sentinel per worker."""
        self.start_time = datetime.now()
        self._start_counter = self.clock()

        for sequence in range(1, self.iterations + 1):
            credential = self.rotator.next()
            job = Job(
                sequence=sequence,
                credential=credential,
                secret=self.rotator.secret_for(credential),
                target_service=self.target_service
            )
            if not self._put(self._jobs, job):
                return

        self._set_state(PoolState.DRAINING)
        self.logger.debug(f"Dispatched {self.iterations} jobs")

        for _ in range(self.parallelism):
            if not self._put(self._jobs, _CLOSE):
                return

    def _execute(self, worker_id: int, job: Job) -> AuthResult:
        """
        Make one timed attempt inside its own session.

        Only the attempt itself is timed; session setup and queue wait are not.

        Raises:
            PreconditionFailure: If the session or names cannot be set up
        """
        identity = job.credential.identity

        with self.authenticator.session() as session:
            start = self.clock()
            try:
                session.attempt(identity, job.secret, job.target_service)
            except AuthenticationFailure as e:
                elapsed = self.clock() - start
                result = AuthResult(job.sequence, False, elapsed, str(e))
            else:
                elapsed = self.clock() - start
                result = AuthResult(job.sequence, True, elapsed)

        if self.verbose:
            status = "SUCCESS" if result.success else f"FAIL ({result.error})"
            self.logger.info(
                f"[{worker_id}] {format_duration(elapsed)} {self.authenticator.name} "
                f"({identity}) {status}"
            )

        return result

    def _worker(self, worker_id: int) -> None:
        """Process jobs until the close sentinel arrives or the run is cancelled."""
        while True:
            job = self._get(self._jobs)
            if job is None or job is _CLOSE:
                return

            try:
                result = self._execute(worker_id, job)
            except PreconditionFailure as e:
                self._fail(PreconditionFailure(e.reason, worker_id))
                return
            except Exception as e:
                self._fail(PreconditionFailure(f"{e.__class__.__name__}: {e}", worker_id))
                return

            if not self._put(self._results, result):
                return

    def _collect(self, aggregator: Aggregator) -> None:
        """Receive exactly ``iterations`` results on the calling thread."""
        while not aggregator.complete:
            result = self._get(self._results)
            if result is None:
                if self._fatal is not None:
                    raise self._fatal
                raise RunCancelled(aggregator.received, self.iterations)

            aggregator.add(result)
            if self.on_result is not None:
                self.on_result(result)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> RunSummary:
        """
        Execute the whole benchmark and return its summary.

        Returns:
            RunSummary with exactly ``iterations`` results accounted for

        Raises:
            PreconditionFailure: If any worker could not set up its call
            RunCancelled: If the run was interrupted
        """
        if self.state is not PoolState.IDLE:
            raise RuntimeError("LoadService.run() can only be called once")

        self._set_state(PoolState.RUNNING)
        self.logger.debug(
            f"Starting {self.parallelism} workers for {self.iterations} "
            f"attempts (queue size {self.queue_size})"
        )

        aggregator = Aggregator(self.iterations)

        for worker_id in range(1, self.parallelism + 1):
            thread = threading.Thread(
                target=self._worker,
                args=(worker_id,),
                name=f"krb5perf-worker-{worker_id}",
                daemon=True
            )
            self._threads.append(thread)
            thread.start()

        dispatcher = threading.Thread(
            target=self._dispatch, name="krb5perf-dispatcher", daemon=True
        )
        self._threads.append(dispatcher)
        dispatcher.start()

        try:
            self._collect(aggregator)
            elapsed_wall = self.clock() - self._start_counter
        except KeyboardInterrupt:
            self._cancel.set()
            self._shutdown(ABORT_JOIN_TIMEOUT)
            raise RunCancelled(aggregator.received, self.iterations)
        except BaseException:
            self._cancel.set()
            self._shutdown(ABORT_JOIN_TIMEOUT)
            raise

        self._shutdown()
        self.logger.debug(f"All {self.iterations} results collected")

        return aggregator.summarize(self.start_time, elapsed_wall, self.parallelism)

    def _shutdown(self, timeout: Optional[float] = None) -> None:
        """Join every thread, sharing one deadline when a timeout is given."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            if deadline is None:
                thread.join()
            else:
                thread.join(max(0.0, deadline - time.monotonic()))
        self._set_state(PoolState.STOPPED)
