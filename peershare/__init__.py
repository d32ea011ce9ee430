"""Socket-based file sharing: direct transfers and a peer-to-peer network with a central index."""

__version__ = "0.1.0"