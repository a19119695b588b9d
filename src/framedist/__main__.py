"""
Entrypoint for running the frame distribution

Example:
```
python -m framedist local --workers 4 --mode processes
python -m framedist dist --idx 0 --coordinator_url tcp://node0:12345 --workers 3
```
"""

import logging
import logging.config
import socket

import fire

from framedist.executor.config import RunConfig, with_level
from framedist.run import launch_coordinator, launch_worker, run_processes, run_threads

logger = logging.getLogger("framedist.main")


def main_local(
    workers: int = 4,
    mode: str = "threads",
    dataset_rows: int = 20,
    dataset_cols: int = 20,
    frame_rows: int = 4,
    frame_cols: int = 5,
    delay_ms: int = 50,
    seed: int|None = None,
    output: str = "video_and_frames.txt",
    port_base: int = 12345,
    log_level: str = "INFO",
) -> None:
    """Runs coordinator and workers on this host, workers being either `threads` or `processes`"""
    log_config = with_level(log_level)
    logging.config.dictConfig(log_config)
    config = RunConfig(
        dataset_rows=dataset_rows,
        dataset_cols=dataset_cols,
        frame_rows=frame_rows,
        frame_cols=frame_cols,
        workers=workers,
        delay_ms=delay_ms,
        seed=seed,
        output=output,
        port_base=port_base,
    )
    if mode == "threads":
        run_threads(config)
    elif mode == "processes":
        run_processes(config, log_config=log_config)
    else:
        raise ValueError(f"unknown mode {mode}, expected threads or processes")


def main_dist(
    idx: int,
    coordinator_url: str,
    workers: int = 4,
    dataset_rows: int = 20,
    dataset_cols: int = 20,
    frame_rows: int = 4,
    frame_cols: int = 5,
    delay_ms: int = 50,
    seed: int|None = None,
    output: str = "video_and_frames.txt",
    port_base: int = 12345,
    log_level: str = "INFO",
) -> None:
    """Entrypoint for *both* coordinator and worker -- they may be on different hosts! Distinguished by idx: 0 for
    coordinator, 1+ for worker. Assumed to come from slurm procid."""
    log_config = with_level(log_level)
    logging.config.dictConfig(log_config)
    if idx == 0:
        config = RunConfig(
            dataset_rows=dataset_rows,
            dataset_cols=dataset_cols,
            frame_rows=frame_rows,
            frame_cols=frame_cols,
            workers=workers,
            delay_ms=delay_ms,
            seed=seed,
            output=output,
        )
        launch_coordinator(config, address=coordinator_url)
    else:
        address = f"tcp://{socket.gethostname()}:{port_base + idx}"
        logger.info(f"worker {idx} listening at {address}")
        launch_worker(coordinator_url, address, delay_ms, log_config)


if __name__ == "__main__":
    fire.Fire({"local": main_local, "dist": main_dist})
