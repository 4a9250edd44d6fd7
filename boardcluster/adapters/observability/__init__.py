from boardcluster.adapters.observability.logging_observer import LoggingObserver, NullObserver

__all__ = ["LoggingObserver", "NullObserver"]
