"""
Audio capture for DIA: microphone stream, energy VAD and helpers.
"""
