"""jaegercat: print Jaeger agent datagrams and answer sampling queries."""

__version__ = "0.3.0"
