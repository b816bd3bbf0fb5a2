"""
Bragfy — agente do Telegram para registro de atividades e geração de Brag Documents.
"""

__version__ = "1.0.0"
