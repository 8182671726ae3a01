"""SignalRec: hybrid product recommendation engine.

This package scores catalog products for a user by merging collaborative
filtering, content-based filtering and a learned scorer, optionally
re-weighted by the context a request is made in.

Modules:
    recommender: Individual scorers and the hybrid ensemble
    analytics: Aggregation of impression, click and purchase events
    config: Engine configuration and defaults
"""

__version__ = "0.1.0"
