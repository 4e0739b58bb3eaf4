# painel/config.py
import os
from dotenv import load_dotenv

load_dotenv()

# Configurações do Telegram
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")

# Configurações do Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
MOVEMENTS_TABLE = os.getenv("PAINEL_MOVEMENTS_TABLE", "dmovimentacoes")

# Regra de classificação receita/despesa: "sinal" ou "rubrica"
KIND_RULE = os.getenv("PAINEL_KIND_RULE", "sinal")

# Tentativas para falhas de rede transitórias
FETCH_RETRIES = int(os.getenv("PAINEL_FETCH_RETRIES", "3"))
FETCH_BACKOFF_SECONDS = float(os.getenv("PAINEL_FETCH_BACKOFF_SECONDS", "0.5"))

# Arquivo onde os filtros de cada usuário são persistidos
FILTER_STATE_PATH = os.getenv("PAINEL_FILTER_STATE_PATH", "./data/filtros.json")

LOG_LEVEL = os.getenv("PAINEL_LOG_LEVEL", "INFO")
