"""LLM provider adapters.

Two concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - OpenAILLMProvider    — primary model (gpt-4o-mini by default)
    - AnthropicLLMProvider — fallback model (Claude 3.5 Sonnet by default)

main.py builds both and hands them to the ModelInvocationLayer, which
routes attempt 1 to the primary and every retry to the fallback.
"""
