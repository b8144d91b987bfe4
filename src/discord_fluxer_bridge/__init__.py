"""Discord ↔ Fluxer Bridge - Relay chat messages between Discord and Fluxer channels."""

__version__ = "0.1.0"
