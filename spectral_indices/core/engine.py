"""
Execution engine connection.

Export tasks run on a dask.distributed cluster. Either an existing scheduler
is used (the cluster then outlives this process and owns every submitted
export), or a LocalCluster is started for the duration of the run.
"""

import gc
import time
from contextlib import contextmanager

import dask.distributed
import psutil

from shared_utils import get_logger

from .config import ComputeConfig

logger = get_logger('engine')

DRAIN_POLL_SECONDS = 10


def _pending_task_count(dask_scheduler=None) -> int:
    return len(dask_scheduler.tasks)


def wait_for_idle(client, poll_seconds: float = DRAIN_POLL_SECONDS) -> None:
    """
    Block until the scheduler holds no tasks.

    Only used before shutting down a LocalCluster; it says nothing about
    whether individual exports succeeded.
    """
    pending = client.run_on_scheduler(_pending_task_count)
    while pending:
        logger.info(f"Waiting for {pending} cluster tasks before shutdown...")
        time.sleep(poll_seconds)
        pending = client.run_on_scheduler(_pending_task_count)


@contextmanager
def setup_cluster(config: ComputeConfig, drain_on_exit: bool = True):
    """
    Connect to the execution cluster.

    Args:
        config: Cluster sizing or scheduler address
        drain_on_exit: For a LocalCluster, wait for outstanding tasks before
            closing it so fire-and-forget exports are not killed

    Yields:
        dask.distributed.Client: Client for graph submission

    Examples:
        >>> with setup_cluster(config.compute) as client:
        ...     ExportSubmitter(client).submit_all(units)
    """
    cluster = None
    client = None

    try:
        if config.scheduler_address:
            client = dask.distributed.Client(config.scheduler_address)
            logger.info(f"Connected to scheduler at {config.scheduler_address}")
        else:
            cluster = dask.distributed.LocalCluster(
                n_workers=config.n_workers,
                threads_per_worker=config.threads_per_worker,
                memory_limit=config.memory_per_worker
            )
            client = dask.distributed.Client(cluster)
            logger.info(f"Cluster dashboard: {client.dashboard_link}")
        yield client

        if cluster is not None and drain_on_exit:
            wait_for_idle(client)

    finally:
        if client is not None:
            logger.info("Closing client...")
            client.close()

        if cluster is not None:
            logger.info("Closing cluster...")
            cluster.close()

        gc.collect()
        memory_info = psutil.Process().memory_info()
        logger.info(f"Memory usage after cleanup: {memory_info.rss / 1024 / 1024:.2f} MB")
