"""Clients for the external collaborators: banking API, AI providers, Telegram.

Re-exports the client classes so consumers can import directly:
    from Gordon_Worker.clients import AiClient, InvestecClient, TelegramNotifier
"""

from Gordon_Worker.clients.ai import AiClient
from Gordon_Worker.clients.investec import InvestecClient
from Gordon_Worker.clients.telegram import TelegramNotifier

__all__ = ["AiClient", "InvestecClient", "TelegramNotifier"]
