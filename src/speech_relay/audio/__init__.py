"""
Audio handling for the speech relay.

This module holds the WAV container codec, input validation and the
ffmpeg conditioning stage that prepares uploads for recognition.
"""
