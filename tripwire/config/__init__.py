from .paths import STATE_DIR, ensure_runtime_dirs
from .settings import SINK_BACKENDS, TripwireConfig, load_config

__all__ = ["STATE_DIR", "ensure_runtime_dirs", "SINK_BACKENDS", "TripwireConfig", "load_config"]
