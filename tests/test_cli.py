"""
Tests for the administration CLI.
"""
from click.testing import CliRunner
from sqlmodel import Session, select

from fieldservice import config
from fieldservice.cli import cli
from fieldservice.database import engine
from fieldservice.models import Service, Unit, User


def test_seed_is_repeatable(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_EMAIL", "root@crb.com.br")
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "root123")
    runner = CliRunner()

    assert runner.invoke(cli, ["seed"]).exit_code == 0
    result = runner.invoke(cli, ["seed"])
    assert result.exit_code == 0, result.output

    with Session(engine) as session:
        names = sorted(s.name for s in session.exec(select(Service)).all())
        assert names == ["Limpeza de Vidro", "Roçada", "Varrição Manual"]
        assert len(session.exec(select(Unit)).all()) == 2
        admin = session.exec(select(User).where(User.email == "root@crb.com.br")).one()
        assert admin.role == "ADMIN"


def test_import_locations_command(tmp_path):
    csv_file = tmp_path / "locais.csv"
    csv_file.write_text("city,bairro,rua\nCidade A,Centro,\nCidade A,Centro,Rua 1\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["import-locations", str(csv_file), "--yes"])
    assert result.exit_code == 0, result.output
    assert "Groups: 1, members: 1" in result.output
