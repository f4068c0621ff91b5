"""
tuna - send the same queries to many LLM providers and compare the answers.

Subpackages:
  config/    provider configuration and the provider registry
  llm/       OpenAI-compatible clients, rate limiting and routing
  plan/      plan generation/loading and system prompt compilation
  exec/      plan execution engine
  response/  response files (front matter, layout, ratings)
  cli/       command line interface
"""

__version__ = "0.1.0"
