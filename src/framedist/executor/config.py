"""
Run parameters and the logging configuration shared by all processes
"""

from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self

from framedist.transform import SIMULATED_DELAY_MS

logging_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(processName)s %(threadName)s %(name)s:%(lineno)d %(message)s",
        },
    },
    "handlers": {
        "default": {
            "level": "DEBUG",
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "framedist": {"level": "INFO"},
        "framedist.low.tracing": {"level": "INFO"},
    },
    "root": {"level": "WARNING", "handlers": ["default"]},
}


def with_level(level: str) -> dict:
    """Copy of `logging_config` with the framedist loggers at `level`"""
    loggers = {name: {**conf, "level": level} for name, conf in logging_config["loggers"].items()} # type: ignore
    return {**logging_config, "loggers": loggers}


class RunConfig(BaseModel):
    dataset_rows: int = Field(20, ge=0, description="rows of the generated dataset")
    dataset_cols: int = Field(20, ge=0, description="columns of the generated dataset")
    frame_rows: int = Field(4, gt=0, description="rows of the sliding window")
    frame_cols: int = Field(5, gt=0, description="columns of the sliding window")
    workers: int = Field(4, ge=1, description="size of the worker pool, excluding the coordinator")
    delay_ms: int = Field(SIMULATED_DELAY_MS, ge=0, description="simulated latency of each transform call")
    seed: int|None = Field(None, description="seed of the dataset generator, random if not given")
    output: str = Field("video_and_frames.txt", description="path of the text sink, empty to skip writing")
    host: str = Field("localhost", description="hostname for zmq endpoints")
    port_base: int = Field(12345, gt=0, lt=65536, description="coordinator port, workers use the consecutive ones")

    @model_validator(mode="after")
    def check_ports(self) -> Self:
        if self.port_base + self.workers >= 65536:
            raise ValueError(f"not enough ports above {self.port_base} for {self.workers} workers")
        return self

    def coordinator_address(self) -> str:
        return f"tcp://{self.host}:{self.port_base}"

    def worker_address(self, idx: int) -> str:
        """Worker idx is 1-based, matching the process index of distributed launches"""
        return f"tcp://{self.host}:{self.port_base + idx}"
