"""
A Kubernetes operator that applies Timoni bundles stored in Secrets of type `timoni.sh/bundle`.
"""

__version__ = "0.1.0"
