from __future__ import annotations

from typing import Any

from tarpipe.schemas import (
    ClientConfig,
    CompressConfig,
    MeterConfig,
    PackConfig,
    PipelineConfig,
)

DEFAULT_COMPRESSOR = "xz"


class ConfigAdapter:
    """High-level accessor for general and engine-specific configuration.

    Compressor settings resolve in the order:

    **general.compress -> engines.<name> -> built-in defaults**

    with the engine block taking precedence over the general one.

    Args:
        config (dict[str, Any]): Loaded configuration mapping with a
            ``general`` block and optionally an ``engines`` block.
    """

    def __init__(self, config: dict[str, Any]) -> None:
        self._config: dict[str, Any] = dict(config)

    def get_config(self) -> dict[str, Any]:
        """Return the full raw configuration mapping."""
        return self._config

    def get_compressor(self) -> str:
        """Return the configured compression engine key.

        Returns:
            str: Engine key, ``"xz"`` if unspecified.
        """
        name = self._gen_cfg().get("compressor")
        if isinstance(name, str) and name.strip():
            return name.strip().lower()
        return DEFAULT_COMPRESSOR

    def get_pack_config(self) -> PackConfig:
        cfg = self._section("pack")
        return PackConfig(
            preserve_acls=bool(cfg.get("preserve_acls", True)),
            preserve_xattrs=bool(cfg.get("preserve_xattrs", True)),
            quiet=bool(cfg.get("quiet", True)),
        )

    def get_meter_config(self) -> MeterConfig:
        cfg = self._section("meter")
        return MeterConfig(
            binary_units=bool(cfg.get("binary_units", False)),
            quiet=bool(cfg.get("quiet", False)),
        )

    def get_compress_config(self, engine: str | None = None) -> CompressConfig:
        """Build a CompressConfig by merging general and engine overrides.

        Args:
            engine (str | None): Engine key; defaults to the configured
                compressor.

        Returns:
            CompressConfig: Resolved compressor configuration.

        Raises:
            ValueError: If a numeric option is not an integer.
        """
        name = engine or self.get_compressor()
        cfg = {**self._section("compress"), **self._engine_cfg(name)}

        return CompressConfig(
            engine=name,
            dictionary_mib=self._to_int(cfg.get("dictionary_mib", 256), "dictionary_mib"),
            threads=self._to_opt_int(cfg.get("threads"), "threads"),
            level=self._to_opt_int(cfg.get("level"), "level"),
        )

    def get_pipeline_config(self) -> PipelineConfig:
        cfg = self._section("pipeline")
        return PipelineConfig(
            grace_period=float(cfg.get("grace_period", 0.2)),
            poll_interval=float(cfg.get("poll_interval", 0.12)),
            two_phase=bool(cfg.get("two_phase", False)),
            cancel_exit_code=int(cfg.get("cancel_exit_code", 1)),
        )

    def get_client_config(self, engine: str | None = None) -> ClientConfig:
        """Build the complete ClientConfig.

        Args:
            engine (str | None): Compressor override.

        Returns:
            ClientConfig: Resolved client configuration.
        """
        general_cfg = self._gen_cfg()
        scratch_dir = general_cfg.get("scratch_dir")

        return ClientConfig(
            scratch_dir=str(scratch_dir) if scratch_dir else None,
            measure_sizes=bool(general_cfg.get("measure_sizes", True)),
            integrity_check=bool(general_cfg.get("integrity_check", False)),
            delete_prior=bool(general_cfg.get("delete_prior", False)),
            keep_source=bool(general_cfg.get("keep_source", True)),
            pack_cfg=self.get_pack_config(),
            meter_cfg=self.get_meter_config(),
            compress_cfg=self.get_compress_config(engine),
            pipeline_cfg=self.get_pipeline_config(),
        )

    def _gen_cfg(self) -> dict[str, Any]:
        """Return the ``general`` mapping or an empty dict."""
        general = self._config.get("general")
        return general if isinstance(general, dict) else {}

    def _section(self, key: str) -> dict[str, Any]:
        """Return ``general.<key>`` or an empty dict."""
        value = self._gen_cfg().get(key)
        return value if isinstance(value, dict) else {}

    def _engine_cfg(self, engine: str) -> dict[str, Any]:
        """Return the ``engines.<engine>`` block or an empty dict."""
        engines_cfg = self._config.get("engines") or {}
        value = engines_cfg.get(engine)
        return value if isinstance(value, dict) else {}

    @staticmethod
    def _to_int(value: Any, key: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer, got {value!r}")
        return value

    @classmethod
    def _to_opt_int(cls, value: Any, key: str) -> int | None:
        return None if value is None else cls._to_int(value, key)
