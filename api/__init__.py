"""HTTP API for VistaQuest."""
