"""HTTP side of tripwire: middleware, sinks, config and the host app."""
