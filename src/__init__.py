"""
Leasing Voice Agent - Webhook Conversation Orchestrator

An event-driven webhook service that keeps per-conversation history,
repairs interrupted assistant turns and streams tool-augmented LLM
responses back to the voice platform for speech synthesis.
"""

__version__ = "1.0.0"
