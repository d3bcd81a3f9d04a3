"""forecast-stream: debounced, cancel-on-supersede forecast fetch pipelines."""

__version__ = "0.1.0"
