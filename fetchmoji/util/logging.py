"""
Structured logging for codec, store, worker and coordinator operations.
"""

import logging
from typing import Any, Dict, List, Optional


class StructuredLogger:
    """Structured logger shared by the fetchmoji modules."""

    def __init__(self, name: str = "fetchmoji"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_codec_operation(self, operation: str, count: int, dim: int, nbytes: int, status: str = "success"):
        """Log an encode/decode of an embeddings blob."""
        details = {"count": count, "dim": dim, "bytes": nbytes}
        self.log_operation(f"codec.{operation}", status, details)

    def log_store_operation(self, operation: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector store operation."""
        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"store.{operation}", status, details, level=level)

    def log_worker_event(self, event: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log an inference worker lifecycle event."""
        level = logging.WARNING if status == "failed" else logging.DEBUG
        self.log_operation(f"worker.{event}", status, details, level=level)

    def log_coordinator_event(self, event: str, state: Dict[str, Any] = None, status: str = "success"):
        """Log a coordinator transition with a state snapshot."""
        level = logging.ERROR if status == "failed" else logging.DEBUG
        self.log_operation(f"coordinator.{event}", status, state, level=level)

    def log_artifact(self, name: str, size_bytes: int, details: Dict[str, Any] = None):
        """Log an artifact written or fetched."""
        log_details = {
            "artifact": name,
            "size_mb": round(size_bytes / (1024 * 1024), 2),
        }
        if details:
            log_details.update(details)

        self.log_operation("artifact", "written", log_details)

    def log_search(self, query: str, results: List[str], duration_ms: Optional[float] = None):
        """Log a search with its top identifiers."""
        details = {
            "query": query[:50] + "..." if len(query) > 50 else query,
            "results": results[:10],
        }
        if duration_ms is not None:
            details["duration_ms"] = round(duration_ms, 2)

        self.log_operation("search", "success", details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
