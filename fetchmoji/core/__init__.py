"""
Core services: configuration, errors, artifact loading, the inference worker
and the search coordinator.
"""
