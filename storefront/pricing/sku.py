import re

# Suffixe interne d'identifiant d'image (8 caractères hexadécimaux), refusé par le catalogue
_IMAGE_SUFFIX = re.compile(r"^(.+)-[a-f0-9]{8}$", re.IGNORECASE)


def extract_base_sku(sku: str) -> str:
    """
    SKU de base accepté par les devis et commandes.
    - "GLOBAL-CFPM-16X20-1a2b3c4d" -> "GLOBAL-CFPM-16X20"
    - Retire les suffixes empilés, donc extract_base_sku(extract_base_sku(s)) == extract_base_sku(s)
    """
    value = (sku or "").strip()
    m = _IMAGE_SUFFIX.match(value)
    while m:
        value = m.group(1)
        m = _IMAGE_SUFFIX.match(value)
    return value
