"""Middleware package initialization"""
from teamspace.middleware.prometheus import PrometheusMiddleware, metrics_endpoint

__all__ = ["PrometheusMiddleware", "metrics_endpoint"]
