"""
TTS (Text-to-Speech) module for DIA.
Speech output driver and voice selection; the Piper engine lives in
dia.tts.piper_engine and is imported only where audio output is wanted.
"""
from dia.tts.speech_output import SpeechOutput, SynthesisEngine, Utterance, Voice, select_voice

__all__ = ["SpeechOutput", "SynthesisEngine", "Utterance", "Voice", "select_voice"]
