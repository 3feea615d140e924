"""divide-it: split one video into random portrait clips and enrich them."""

__version__ = "0.1.0"
