"""
PassVault - Recovery Kit and CSV Tests

Run with: pytest test_extras.py
"""

import csv

import pytest

from passvault import config, csv_io
from passvault.errors import (
    AuthenticationFailed,
    InvalidCredentials,
    MissingKeyMaterial,
    RecoveryError,
    VaultLocked,
)
from passvault.recovery import (
    combine_recovery_shares,
    format_recovery_kit,
    generate_recovery_shares,
)
from passvault.vault import Vault, VaultState

PASSWORD = "Str0ng!Pw"


@pytest.fixture
def vault(tmp_path):
    v = Vault(tmp_path / "vault")
    v.setup_master_password(PASSWORD)
    return v


# =============================================================================
# Recovery shares
# =============================================================================

def test_any_k_shares_recover_key():
    key = bytes(range(32))
    shares = generate_recovery_shares(key, k=3, n=5)
    assert len(shares) == 5

    assert combine_recovery_shares([shares[0], shares[2], shares[4]]) == key
    assert combine_recovery_shares([shares[1], shares[3], shares[4]]) == key


def test_insufficient_shares_rejected():
    shares = generate_recovery_shares(bytes(32), k=3, n=5)
    with pytest.raises(RecoveryError):
        combine_recovery_shares(shares[:2])
    with pytest.raises(RecoveryError):
        combine_recovery_shares([])


def test_garbage_share_rejected():
    with pytest.raises(RecoveryError):
        combine_recovery_shares(["not a real mnemonic", "neither is this one"])


@pytest.mark.parametrize("k, n", [(4, 3), (1, 3), (2, 17)])
def test_share_parameters_validated(k, n):
    with pytest.raises(ValueError):
        generate_recovery_shares(bytes(32), k, n)


def test_shares_tolerate_extra_whitespace():
    key = bytes(range(32))
    shares = generate_recovery_shares(key, k=2, n=2)
    messy = ["  " + "   ".join(s.split()) + "\n" for s in shares]
    assert combine_recovery_shares(messy) == key


def test_recovery_kit_text():
    shares = generate_recovery_shares(bytes(32), k=2, n=3)
    kit = format_recovery_kit(shares, 2)
    assert "Need 2 of 3 shares" in kit
    for share in shares:
        assert share in kit


# =============================================================================
# Restoring secret.key
# =============================================================================

def test_restore_lost_secret_key(vault):
    section = vault.add_section("Email")
    vault.add_account(section, "Gmail", "a@b.com", "Secr3t!1")
    shares = vault.create_recovery_kit(2, 3)
    vault.secret_key_path.unlink()

    other = Vault(vault.data_dir)
    with pytest.raises(MissingKeyMaterial):
        other.unlock(PASSWORD)

    other.restore_vault_key(PASSWORD, [shares[0], shares[2]])
    assert other.state is VaultState.UNLOCKED
    assert other.sections[0].accounts[0].secret == "Secr3t!1"
    assert vault.secret_key_path.is_file()

    # The restored key works for a normal unlock afterwards
    assert Vault(vault.data_dir).unlock(PASSWORD)


def test_restore_requires_master_password(vault):
    shares = vault.create_recovery_kit(2, 2)
    other = Vault(vault.data_dir)
    with pytest.raises(InvalidCredentials):
        other.restore_vault_key("wrong", shares)
    assert other.state is VaultState.LOCKED


def test_restore_refuses_foreign_key(vault, tmp_path):
    foreign = Vault(tmp_path / "foreign")
    foreign.setup_master_password(PASSWORD)
    foreign_shares = foreign.create_recovery_kit(2, 2)
    original_key = vault.secret_key_path.read_bytes()

    other = Vault(vault.data_dir)
    with pytest.raises(AuthenticationFailed):
        other.restore_vault_key(PASSWORD, foreign_shares)
    assert vault.secret_key_path.read_bytes() == original_key


def test_recovery_kit_requires_unlock(vault):
    vault.lock()
    with pytest.raises(VaultLocked):
        vault.create_recovery_kit(2, 3)


# =============================================================================
# CSV export / import
# =============================================================================

def test_export_then_import_into_new_vault(vault, tmp_path):
    email = vault.add_section("Email")
    games = vault.add_section("Games")
    vault.add_account(email, "Gmail", "a@b.com", "Secr3t!1")
    vault.add_account(email, "Outlook", "c@d.com", "pässwörd, with \"quotes\"")
    vault.add_account(games, "Steam", "gamer", "hunter2")

    out = tmp_path / "export.csv"
    assert csv_io.export_csv(vault, out) == 3

    fresh = Vault(tmp_path / "fresh")
    fresh.setup_master_password(PASSWORD)
    assert csv_io.import_csv(fresh, out) == 3

    restored = Vault(fresh.data_dir)
    assert restored.unlock(PASSWORD)
    got = [(s.name, a.type, a.identifier, a.secret) for s in restored.sections for a in s.accounts]
    assert got == [
        ("Email", "Gmail", "a@b.com", "Secr3t!1"),
        ("Email", "Outlook", "c@d.com", "pässwörd, with \"quotes\""),
        ("Games", "Steam", "gamer", "hunter2"),
    ]
    # Imported accounts start a fresh history
    assert all(len(a.history) == 1 for s in restored.sections for a in s.accounts)


def test_export_header(vault, tmp_path):
    out = tmp_path / "export.csv"
    csv_io.export_csv(vault, out)
    with open(out, newline="", encoding="utf-8") as f:
        assert next(csv.reader(f)) == csv_io.EXPORT_FIELDS


def test_import_browser_format(vault, tmp_path):
    """Chrome/Brave columns: name,url,username,password; no section column."""
    path = tmp_path / "chrome.csv"
    path.write_text(
        "name,url,username,password\n"
        "github.com,https://github.com,octo,gh-pass\n"
        ",https://example.com,,ex-pass\n"
        ",,,fallback\n"
        "skipped.com,https://skipped.com,user,\n",
        encoding="utf-8",
    )

    assert csv_io.import_csv(vault, path) == 3
    assert [s.name for s in vault.sections] == ["Imported"]
    accounts = vault.sections[0].accounts
    assert [(a.type, a.identifier, a.secret) for a in accounts] == [
        ("github.com", "octo", "gh-pass"),
        ("https://example.com", "No email", "ex-pass"),
        ("Unknown", "No email", "fallback"),
    ]


def test_import_spanish_headers_and_existing_section(vault, tmp_path):
    vault.add_section("Correo")
    path = tmp_path / "old.csv"
    path.write_text(
        "Sección,De qué es la cuenta,Email,Contraseña\n"
        "correo,Gmail,a@b.com,uno\n"
        "Juegos,Steam,gamer,dos\n",
        encoding="utf-8",
    )

    assert csv_io.import_csv(vault, path) == 2
    assert [s.name for s in vault.sections] == ["Correo", "Juegos"]
    assert vault.sections[0].accounts[0].type == "Gmail"


def test_import_handles_utf8_bom(vault, tmp_path):
    path = tmp_path / "bom.csv"
    path.write_bytes("\ufeffSection,Name,Username,Password\nWork,VPN,me,pw\n".encode("utf-8"))
    assert csv_io.import_csv(vault, path) == 1
    assert vault.sections[0].name == "Work"


def test_import_requires_unlock(vault, tmp_path):
    path = tmp_path / "one.csv"
    path.write_text("name,username,password\nx,y,z\n", encoding="utf-8")
    vault.lock()
    with pytest.raises(VaultLocked):
        csv_io.import_csv(vault, path)


def test_import_persists_each_record(vault, tmp_path):
    path = tmp_path / "two.csv"
    path.write_text("name,username,password\nA,u1,p1\nB,u2,p2\n", encoding="utf-8")
    csv_io.import_csv(vault, path)

    reloaded = Vault(vault.data_dir)
    assert reloaded.unlock(PASSWORD)
    assert len(reloaded.sections[0].accounts) == 2
    assert (vault.data_dir / config.PASSWORDS_FILE).is_file()
