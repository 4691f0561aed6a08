"""Tests pour le module config."""

import json

import pytest
from pydantic import BaseModel, ValidationError

from runcmd.config import (
    FileConfigLoader,
    LoggingConfig,
    RuncmdConfig,
    TargetConfig,
)


class TestFileConfigLoader:
    """Tests pour FileConfigLoader."""

    def setup_method(self):
        self.loader = FileConfigLoader()

    def test_load_toml_brut(self, tmp_path):
        """Test du chargement TOML sans schema."""
        path = tmp_path / "config.toml"
        path.write_text('[targets.local]\nkind = "local"\n')
        assert self.loader.load(path) == {"targets": {"local": {"kind": "local"}}}

    def test_load_json_avec_schema(self, tmp_path):
        """Test du chargement JSON validé par RuncmdConfig."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "targets": {"build": {
                "host": "build", "user": "deploy",
                "password_key": "BUILD_PASSWORD",
            }}
        }))
        config = self.loader.load(path, schema=RuncmdConfig)
        assert isinstance(config, RuncmdConfig)
        assert config.targets["build"].address == "build:22"

    def test_fichier_absent(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            self.loader.load(tmp_path / "absent.toml")

    def test_extension_non_supportee(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\n")
        with pytest.raises(ValueError, match="Extension non supportée"):
            self.loader.load(path)

    def test_schema_invalide(self, tmp_path):
        """Test du refus d'un schema qui n'est pas un BaseModel."""
        path = tmp_path / "config.json"
        path.write_text("{}")
        with pytest.raises(TypeError):
            self.loader.load(path, schema=dict)

    def test_schema_personnalise(self, tmp_path):
        class Mini(BaseModel):
            nom: str

        path = tmp_path / "config.json"
        path.write_text('{"nom": "x"}')
        assert self.loader.load(path, schema=Mini).nom == "x"


class TestTargetConfig:
    """Tests de validation des cibles."""

    def test_cible_locale_minimale(self):
        target = TargetConfig(kind="local")
        assert target.host == ""

    def test_cible_ssh_par_cle(self):
        target = TargetConfig(
            host="build", port=2222, user="deploy", key_file="~/.ssh/id"
        )
        assert target.kind == "ssh"
        assert target.strict_host_key_checking is True
        assert target.address == "build:2222"

    @pytest.mark.parametrize("champs", [
        {"user": "deploy", "password_key": "P"},
        {"host": "build", "password_key": "P"},
        {"host": "build", "user": "deploy"},
    ])
    def test_cible_ssh_incomplete(self, champs):
        with pytest.raises(ValidationError):
            TargetConfig(**champs)

    @pytest.mark.parametrize("port", [0, 65536])
    def test_port_hors_limites(self, port):
        with pytest.raises(ValidationError):
            TargetConfig(kind="local", port=port)

    def test_champ_inconnu(self):
        with pytest.raises(ValidationError):
            TargetConfig(kind="local", password="en clair")


class TestLoggingConfig:
    """Tests de la section [logging]."""

    def test_valeurs_par_defaut(self):
        config = LoggingConfig()
        assert config.file is None
        assert config.level == "INFO"
        assert config.console is False

    def test_niveau_normalise(self):
        assert LoggingConfig(level="warning").level == "WARNING"

    def test_niveau_inconnu(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="VERBEUX")

    def test_racine_vide(self):
        config = RuncmdConfig()
        assert config.targets == {}
