"""Linux system metrics read from procfs and sysfs, kept in Prometheus gauges and served over HTTP."""

__version__ = "0.1.0"