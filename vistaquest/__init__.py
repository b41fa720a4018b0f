"""VistaQuest - illustrated choose-your-path adventures on Gemini."""

__version__ = "0.1.0"
