"""Modèles Pydantic de la configuration runcmd.

Exemple de fichier TOML :

    [logging]
    file = "/var/log/runcmd.log"
    level = "DEBUG"

    [targets.build]
    kind = "ssh"
    host = "build.example.org"
    user = "deploy"
    key_file = "~/.ssh/id_ed25519"
    passphrase_key = "BUILD_KEY_PASSPHRASE"

    [targets.local]
    kind = "local"
"""

from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class LoggingConfig(BaseModel):
    """Section [logging].

    Attributes:
        file: Fichier de log. Sans fichier, aucun logger n'est créé.
        level: Niveau du logger (DEBUG, INFO, WARNING, ERROR).
        format: Format logging standard.
        console: Dupliquer les messages sur la console.
    """

    file: Optional[Path] = None
    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(message)s"
    console: bool = False

    model_config = {"extra": "forbid"}

    @field_validator("level")
    @classmethod
    def level_connu(cls, v: str) -> str:
        niveau = v.upper()
        if niveau not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Niveau de log inconnu : {v}")
        return niveau


class TargetConfig(BaseModel):
    """Une cible d'exécution nommée (section [targets.<nom>]).

    Les secrets ne sont jamais stockés dans le fichier : password_key
    et passphrase_key sont des noms de clés résolus par la chaîne de
    secrets (env, .env, keyring).
    """

    kind: Literal["local", "ssh"] = "ssh"
    host: str = ""
    port: int = Field(default=22, ge=1, le=65535)
    user: str = ""
    key_file: Optional[Path] = None
    known_hosts: Optional[Path] = None
    password_key: Optional[str] = None
    passphrase_key: Optional[str] = None
    strict_host_key_checking: bool = True
    connect_timeout: float = Field(default=10.0, gt=0)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def ssh_complet(self) -> "TargetConfig":
        if self.kind == "local":
            return self
        if not self.host.strip():
            raise ValueError("Une cible ssh requiert 'host'")
        if not self.user.strip():
            raise ValueError("Une cible ssh requiert 'user'")
        if self.key_file is None and self.password_key is None:
            raise ValueError(
                "Une cible ssh requiert 'key_file' ou 'password_key'"
            )
        return self

    @property
    def address(self) -> str:
        """Adresse host:port de la cible."""
        return f"{self.host}:{self.port}"


class RuncmdConfig(BaseModel):
    """Racine du fichier de configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    targets: Dict[str, TargetConfig] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}
