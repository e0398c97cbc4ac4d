"""
Marketplace API package.
A consumer-to-consumer marketplace backend built on FastAPI and MongoDB.
"""

__version__ = "1.0.0"
