"""
Wiring of the coordinator and workers into a full run: generate the dataset, cut the frames,
distribute them, write out the results.

Three ways of launching:
 - `run_threads`: everything in this process, workers as threads over a LocalHub
 - `run_processes`: workers as processes on this host, over zmq
 - `launch_coordinator` / `launch_worker`: one party per call, for distributed launches where
   each process is started externally (eg by slurm)
"""

import logging
import logging.config
from multiprocessing import get_context
from threading import Thread

import numpy as np

from framedist.executor.comms import LocalHub, ZmqTransport
from framedist.executor.config import RunConfig, logging_config
from framedist.executor.worker import worker_loop
from framedist.frames import extract_frames, generate_dataset
from framedist.low.core import Address, Frame
from framedist.scheduler.coordinator import RunSummary, run
from framedist.sink import write_results_file
from framedist.transform import blur_with_delay

logger = logging.getLogger(__name__)

COORDINATOR = "coordinator"


def prepare(config: RunConfig, dataset: np.ndarray|None = None) -> tuple[np.ndarray, list[Frame]]:
    if dataset is None:
        dataset = generate_dataset(config.dataset_rows, config.dataset_cols, config.seed)
    frames = list(extract_frames(dataset, config.frame_rows, config.frame_cols))
    logger.info(f"total frames generated: {len(frames)}")
    return dataset, frames


def finish(config: RunConfig, dataset: np.ndarray, summary: RunSummary) -> bool:
    """Persists the results. Failure is reported but not raised -- the summary stays usable"""
    logger.info(f"total time taken: {summary.elapsed_ns/1e6:.0f} ms, tasks per worker: {summary.dispatched}")
    if not config.output:
        return True
    try:
        write_results_file(config.output, dataset, summary.results)
        return True
    except Exception:
        logger.exception(f"failed to write results to {config.output}")
        return False


def run_threads(config: RunConfig, dataset: np.ndarray|None = None) -> RunSummary:
    dataset, frames = prepare(config, dataset)
    hub = LocalHub()
    transport = hub.register(COORDINATOR)
    process = blur_with_delay(config.delay_ms)
    threads = []
    worker_transports = []
    for i in range(1, config.workers + 1):
        worker_transport = hub.register(f"w{i}")
        worker_transports.append(worker_transport)
        t = Thread(target=worker_loop, args=(worker_transport, COORDINATOR, process), name=f"w{i}", daemon=True)
        t.start()
        threads.append(t)
    try:
        summary = run(transport, frames, config.workers)
    except Exception:
        # workers blocked on a response wake up with a TransportError
        for worker_transport in worker_transports:
            worker_transport.close()
        raise
    finally:
        transport.close()
        for t in threads:
            t.join()
    for worker_transport in worker_transports:
        worker_transport.close()
    finish(config, dataset, summary)
    return summary


def launch_worker(coordinator: Address, address: Address, delay_ms: int, log_config: dict = logging_config) -> int:
    logging.config.dictConfig(log_config)
    transport = ZmqTransport(address)
    try:
        return worker_loop(transport, coordinator, blur_with_delay(delay_ms))
    finally:
        transport.close()


def launch_coordinator(config: RunConfig, dataset: np.ndarray|None = None, address: Address|None = None) -> RunSummary:
    dataset, frames = prepare(config, dataset)
    transport = ZmqTransport(address if address is not None else config.coordinator_address())
    try:
        summary = run(transport, frames, config.workers)
    finally:
        transport.close()
    finish(config, dataset, summary)
    return summary


def run_processes(config: RunConfig, dataset: np.ndarray|None = None, log_config: dict = logging_config) -> RunSummary:
    dataset, frames = prepare(config, dataset)
    # NOTE the coordinator binds before any worker starts, a taken port thus fails before forking
    transport = ZmqTransport(config.coordinator_address())
    ctx = get_context("fork")
    ps = []
    try:
        for i in range(1, config.workers + 1):
            p = ctx.Process(
                target=launch_worker,
                args=(config.coordinator_address(), config.worker_address(i), config.delay_ms, log_config),
                name=f"w{i}",
            )
            p.start()
            logger.debug(f"started process {p.pid} for worker {i}")
            ps.append(p)
        summary = run(transport, frames, config.workers)
        for p in ps:
            p.join()
    except Exception:
        for p in ps:
            if p.is_alive():
                p.kill()
        raise
    finally:
        transport.close()
    finish(config, dataset, summary)
    return summary
