# Make `from campusbot.models import ChatMessage, ChatResponse` work
from .chat import ChatMessage, ChatRequest, ChatResponse, SearchResult, SearchDecision  # re-export
