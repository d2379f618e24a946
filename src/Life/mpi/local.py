"""In-process transport with the point-to-point subset of the mpi4py API.

Workers run as threads of one process and talk through buffered FIFO
mailboxes, one per ``(source, dest, tag)``. Sends copy the payload and never
block; receives block until a matching message arrives, the cluster is
aborted, or the optional timeout expires.

Example
-------
>>> cluster = LocalCluster(size=2)
>>> comm0, comm1 = cluster.comm(0), cluster.comm(1)
>>> comm0.Isend(np.array([1, 2]), dest=1, tag=7).Wait()
>>> buf = np.empty(2, dtype=np.int64)
>>> comm1.Recv(buf, source=0, tag=7)
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import defaultdict
from typing import Callable, Optional

import numpy as np

from ..errors import CommunicationFault

log = logging.getLogger(__name__)

# How often a blocked receive re-checks the abort flag
_POLL_INTERVAL = 0.05


class LocalRequest:
    """Handle for a posted send or receive (mirrors ``MPI.Request.Wait``)."""

    def __init__(self, complete: Optional[Callable[[], None]] = None):
        self._complete = complete
        self._done = complete is None

    def Wait(self):
        if not self._done:
            self._complete()
            self._done = True

    def Test(self) -> bool:
        return self._done


class LocalCluster:
    """Shared mailboxes for ``size`` in-process workers.

    Parameters
    ----------
    size : int
        Number of workers.
    timeout : float, optional
        Seconds a receive may wait before raising ``CommunicationFault``.
        ``None`` waits indefinitely.
    """

    def __init__(self, size: int, timeout: Optional[float] = None):
        if size < 1:
            raise ValueError(f"Cluster size must be >= 1, got {size}")
        self.size = size
        self.timeout = timeout
        self.abort_code: Optional[int] = None

        self._lock = threading.Lock()
        self._mailboxes = defaultdict(queue.Queue)
        self._aborted = threading.Event()

    def comm(self, rank: int) -> "LocalComm":
        return LocalComm(self, rank)

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def abort(self, errorcode: int = 1):
        with self._lock:
            if self.abort_code is None:
                self.abort_code = errorcode
        self._aborted.set()

    def mailbox(self, source: int, dest: int, tag: int) -> queue.Queue:
        with self._lock:
            return self._mailboxes[(source, dest, tag)]

    def check_rank(self, rank: int):
        if not 0 <= rank < self.size:
            raise CommunicationFault(f"Rank {rank} is outside cluster of size {self.size}")


class LocalComm:
    """Communicator endpoint for one worker of a ``LocalCluster``."""

    def __init__(self, cluster: LocalCluster, rank: int):
        cluster.check_rank(rank)
        self.cluster = cluster
        self.rank = rank

    def Get_rank(self) -> int:
        return self.rank

    def Get_size(self) -> int:
        return self.cluster.size

    def Isend(self, buf, dest: int, tag: int = 0) -> LocalRequest:
        if self.cluster.aborted:
            raise CommunicationFault(f"[rank {self.rank}] send after abort")
        self.cluster.check_rank(dest)
        payload = np.array(buf, copy=True)
        self.cluster.mailbox(self.rank, dest, tag).put(payload)
        return LocalRequest()

    def Send(self, buf, dest: int, tag: int = 0):
        self.Isend(buf, dest=dest, tag=tag).Wait()

    def Irecv(self, buf: np.ndarray, source: int, tag: int = 0) -> LocalRequest:
        self.cluster.check_rank(source)
        box = self.cluster.mailbox(source, self.rank, tag)
        return LocalRequest(lambda: self._deliver(box, buf, source, tag))

    def Recv(self, buf: np.ndarray, source: int, tag: int = 0):
        self.Irecv(buf, source=source, tag=tag).Wait()

    def Abort(self, errorcode: int = 1):
        log.error(f"[rank {self.rank}] aborting local cluster (code {errorcode})")
        self.cluster.abort(errorcode)

    def _deliver(self, box: queue.Queue, buf: np.ndarray, source: int, tag: int):
        timeout = self.cluster.timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            if self.cluster.aborted:
                raise CommunicationFault(
                    f"[rank {self.rank}] run aborted while waiting on rank {source} (tag {tag})"
                )
            try:
                payload = box.get(timeout=_POLL_INTERVAL)
                break
            except queue.Empty:
                if deadline is not None and time.monotonic() > deadline:
                    raise CommunicationFault(
                        f"[rank {self.rank}] no message from rank {source} (tag {tag}) "
                        f"within {timeout}s"
                    )

        if payload.size != buf.size:
            raise CommunicationFault(
                f"[rank {self.rank}] message from rank {source} (tag {tag}) has "
                f"{payload.size} elements, expected {buf.size}"
            )
        np.copyto(buf, payload.reshape(buf.shape), casting="unsafe")
