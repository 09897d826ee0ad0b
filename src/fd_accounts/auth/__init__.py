"""Bearer-token verification."""

from .tokens import JwtVerifier, Principal

__all__ = ["JwtVerifier", "Principal"]
