"""
Defines structured configuration models using dataclasses.
"""

from dataclasses import dataclass, field


@dataclass
class PackConfig:
    """Configuration for the tar packer/unpacker stage.

    Attributes:
        preserve_acls: Pass ``--acls`` to tar.
        preserve_xattrs: Pass ``--xattrs`` to tar.
        quiet: Discard tar's stderr while packing.
    """

    preserve_acls: bool = True
    preserve_xattrs: bool = True
    quiet: bool = True


@dataclass
class MeterConfig:
    """Configuration for the progress-metering stage.

    Attributes:
        binary_units: Scale sizes by 1024 (MiB, GiB) instead of 1000.
        quiet: Suppress the meter's display entirely.
    """

    binary_units: bool = False
    quiet: bool = False


@dataclass
class CompressConfig:
    """Configuration for the compression engine.

    Attributes:
        engine: Engine key (``"xz"`` or ``"7zz"``).
        dictionary_mib: LZMA2 dictionary size in MiB.
        threads: Worker threads; ``None`` lets the engine decide.
        level: Compression preset; ``None`` uses the engine default.
    """

    engine: str = "xz"
    dictionary_mib: int = 256
    threads: int | None = None
    level: int | None = None


@dataclass
class PipelineConfig:
    """Runtime behavior of the process supervisor.

    Attributes:
        grace_period: Seconds between SIGTERM and SIGKILL on teardown.
        poll_interval: Seconds between liveness polls in the spinner phase.
        two_phase: Run archive creation through the FIFO-backed two-phase
            pipeline.
        cancel_exit_code: Exit status used when a run is cancelled.
    """

    grace_period: float = 0.2
    poll_interval: float = 0.12
    two_phase: bool = False
    cancel_exit_code: int = 1


@dataclass
class ClientConfig:
    """Top-level configuration for the archive client.

    Attributes:
        scratch_dir: Directory for temporary FIFOs and extraction trees.
            ``None`` uses the destination directory.
        measure_sizes: Measure source and output sizes.
        integrity_check: Test the archive after creating it.
        delete_prior: Delete an existing archive before writing the new one.
        keep_source: Keep the source archive after a conversion.
        pack_cfg: Packer configuration.
        meter_cfg: Meter configuration.
        compress_cfg: Compressor configuration.
        pipeline_cfg: Supervisor configuration.
    """

    scratch_dir: str | None = None
    measure_sizes: bool = True
    integrity_check: bool = False
    delete_prior: bool = False
    keep_source: bool = True
    pack_cfg: PackConfig = field(default_factory=PackConfig)
    meter_cfg: MeterConfig = field(default_factory=MeterConfig)
    compress_cfg: CompressConfig = field(default_factory=CompressConfig)
    pipeline_cfg: PipelineConfig = field(default_factory=PipelineConfig)
