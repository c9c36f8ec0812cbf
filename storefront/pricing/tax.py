# Taux de taxe forfaitaires par pays de destination (pas de moteur de juridictions)
TAX_RATES = {
    "US": 0.08,
    "CA": 0.13,
    "GB": 0.20,
    "AU": 0.10,
    "DE": 0.19,
    "FR": 0.20,
    "IT": 0.22,
    "ES": 0.21,
}


def tax_rate(country: str) -> float:
    """Taux du pays (0 si inconnu)."""
    return TAX_RATES.get((country or "").strip().upper(), 0.0)
