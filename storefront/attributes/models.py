"""
Configuration de cadre demandée par l'utilisateur (valeur immuable).
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

NONE_SENTINEL = "none"


class FrameConfiguration(BaseModel):
    """
    Tous les champs sont optionnels; absence ou "none" signifie « non demandé ».
    - Accepte les noms camelCase du front (frameColor, mountColor...) et snake_case
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    size: Optional[str] = None
    frame_color: Optional[str] = Field(default=None, alias="frameColor")
    frame_style: Optional[str] = Field(default=None, alias="frameStyle")
    material: Optional[str] = None
    mount: Optional[str] = None
    mount_color: Optional[str] = Field(default=None, alias="mountColor")
    glaze: Optional[str] = None
    wrap: Optional[str] = None
    paper_type: Optional[str] = Field(default=None, alias="paperType")
    finish: Optional[str] = None
    edge: Optional[str] = None
    substrate_weight: Optional[str] = Field(default=None, alias="substrateWeight")
    style: Optional[str] = None

    def requested(self, field: str) -> Optional[str]:
        """Valeur nettoyée du champ, ou None si vide / "none"."""
        value = getattr(self, field, None)
        if value is None:
            return None
        value = str(value).strip()
        if not value or value.lower() == NONE_SENTINEL:
            return None
        return value

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]) -> "FrameConfiguration":
        """
        Construit une configuration depuis une ligne 'products' ou un dict front.
        - Les colonnes frame_size/frame_style/frame_material sont reprises si présentes
        - frame_style porte la couleur du cadre (black/white/natural/gold/silver):
          reprise en frame_color si aucune couleur n'est fournie, et en style
        """
        row = dict(row or {})
        nested = row.get("frame_config") or row.get("frameConfig") or {}
        data: Dict[str, Any] = dict(nested) if isinstance(nested, dict) else {}
        if row.get("frame_size") and "size" not in data:
            data["size"] = row["frame_size"]
        frame_style = row.get("frame_style")
        if frame_style:
            if not (data.get("frameColor") or data.get("frame_color")):
                data["frame_color"] = frame_style
            if "frameStyle" not in data and "frame_style" not in data:
                data["frame_style"] = frame_style
            data.setdefault("style", frame_style)
        if row.get("frame_material") and "material" not in data:
            data["material"] = row["frame_material"]
        return cls.model_validate(data)
