"""
bizdir.ai_gateway

Client boundary for the AI chat gateway (a small proxy in front of the LLM provider).
"""

# Package marker.
