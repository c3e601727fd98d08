"""Seed data for the offline quote simulator."""

# Previous-session close, minimum price step and display name per ticker
SEED_QUOTES: dict[str, dict] = {
    "SBER": {"close": 280.00, "min_step": 0.01, "name": "Sberbank"},
    "GAZP": {"close": 165.00, "min_step": 0.01, "name": "Gazprom"},
    "LKOH": {"close": 7200.0, "min_step": 0.5, "name": "LUKOIL"},
    "GMKN": {"close": 16000.0, "min_step": 2.0, "name": "Norilsk Nickel"},
    "YNDX": {"close": 3900.0, "min_step": 0.2, "name": "Yandex"},
    "ROSN": {"close": 560.0, "min_step": 0.05, "name": "Rosneft"},
    "MGNT": {"close": 5500.0, "min_step": 0.5, "name": "Magnit"},
    "VTBR": {"close": 0.0245, "min_step": 0.000005, "name": "VTB Bank"},
    "AFLT": {"close": 45.0, "min_step": 0.02, "name": "Aeroflot"},
    "MTSS": {"close": 290.0, "min_step": 0.05, "name": "MTS"},
}

# Default parameters for tickers not in the list above
DEFAULT_MIN_STEP = 0.01
DEFAULT_SIGMA = 0.30  # annualized volatility

# Per-ticker volatility overrides (annualized)
TICKER_SIGMA: dict[str, float] = {
    "SBER": 0.25,
    "GAZP": 0.35,
    "VTBR": 0.45,  # Penny stock, jumpy
    "AFLT": 0.40,
    "GMKN": 0.28,
}

# Share of each move driven by the common market factor
MARKET_FACTOR_WEIGHT = 0.5

EXCHANGE_CODE = "MCX"
