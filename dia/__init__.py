"""
DIA - conversational voice and text assistant.
Wake-word listening, command capture, reply selection and spoken output.
"""

__version__ = "0.3.0"
