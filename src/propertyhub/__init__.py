"""PropertyHub: listings, properties and geo search with a look-aside cache."""

__version__ = "1.0.0"
