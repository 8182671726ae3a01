"""Recommendation algorithms for SignalRec.

This module contains the collaborative, content-based, learned and
context-aware scorers, and the hybrid ensemble that combines them into a
single ranked list of recommendations.
"""
