"""
autodocs.llm

Documentation writers (Gemini through google-genai, offline template writer).
"""
