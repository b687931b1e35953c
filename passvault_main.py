"""
PassVault - Interactive Menu

Main user interface for the password vault.
Features:
- Set up / unlock vault (3 wrong passwords and the program exits)
- Sections: list, add, remove
- Accounts: add (manual or generated), view with history, edit, remove
- Quick copy to clipboard
- CSV import/export
- Settings
- Recovery kit for secret.key
"""

import os
import sys
import getpass
import logging
from pathlib import Path

from passvault import config, crypto, csv_io
from passvault.errors import (
    IntegrityError,
    InvalidCredentials,
    MissingKeyMaterial,
    VaultError,
)
from passvault.recovery import format_recovery_kit
from passvault.vault import Vault, VaultState

logger = logging.getLogger("passvault.menu")


def clear_screen():
    try:
        os.system("cls" if os.name == "nt" else "clear")
    except OSError:
        pass

def pause():
    input("\nPress Enter to continue...")

def choose_vault_dir(current=None):
    default = current or config.DEFAULT_VAULT_DIR
    print(f"Vault directory [{default}]: ", end="")
    return Path(input().strip() or default).expanduser()

def copy_to_clipboard(text):
    try:
        import pyperclip
        pyperclip.copy(text)
        return True
    except ImportError:
        print("\n(pyperclip not installed - run: pip install pyperclip)")
    except pyperclip.PyperclipException as e:
        print(f"\n(clipboard unavailable: {e})")
    return False

def ask_new_master_password():
    while True:
        pw = getpass.getpass("Enter master password: ")
        pw2 = getpass.getpass("Confirm: ")
        if pw != pw2:
            print("Passwords don't match.\n")
            continue
        if not crypto.is_strong_password(pw):
            print("Too weak (min 8 chars with upper, lower, digit and symbol).\n")
            continue
        return pw

def unlock_flow(vault):
    """Ask for the master password; exits the program after too many failures."""
    if vault.state is VaultState.UNINITIALIZED and not vault.has_vault_files():
        print(f"\nERROR: No vault in {vault.data_dir}. Set one up first.")
        pause()
        return False
    for attempt in range(1, config.MAX_UNLOCK_ATTEMPTS + 1):
        password = getpass.getpass("\nMaster password: ")
        result = vault.try_unlock(password)
        if result.ok:
            print("\n✓ Vault unlocked.")
            pause()
            return True
        if isinstance(result.error, InvalidCredentials):
            left = config.MAX_UNLOCK_ATTEMPTS - attempt
            print(f"Wrong password. {left} attempt(s) left.")
            continue
        # Damaged files: retrying the password would not help
        if isinstance(result.error, MissingKeyMaterial):
            print(f"\nERROR: {result.error}")
        elif isinstance(result.error, IntegrityError):
            print(f"\nERROR: Vault file is corrupted or was tampered with ({result.kind}: {result.error})")
        else:
            print(f"\nERROR: Failed to unlock vault ({result.error}).")
        pause()
        return False
    logger.warning("Unlock attempts exhausted for %s", vault.data_dir)
    print("\nToo many failed attempts. Exiting.")
    sys.exit(1)

def require_unlocked(vault):
    return vault.is_unlocked or unlock_flow(vault)

def pick(items, label, describe):
    """Numbered chooser; returns the chosen item or None."""
    if not items:
        print(f"No {label}s.")
        return None
    for i, item in enumerate(items, 1):
        print(f"{i:<4}  {describe(item)}")
    choice = input(f"\n{label.capitalize()} # (1-{len(items)}): ").strip()
    if choice.isdigit() and 1 <= int(choice) <= len(items):
        return items[int(choice) - 1]
    print("Cancelled.")
    return None

def pick_section(vault):
    return pick(vault.sections, "section", lambda s: f"{s.name} ({len(s.accounts)} accounts)")

def pick_account(section):
    return pick(section.accounts, "account", lambda a: f"{a.type:<20}  {a.identifier}")


def cmd_setup(vault):
    clear_screen()
    print("=== Set Up New Vault ===\n")
    vault = Vault(choose_vault_dir(vault.data_dir))
    if vault.master_password_exists():
        print(f"\nVault exists in: {vault.data_dir}")
        pause()
        return vault
    if vault.has_vault_files():
        print(f"\nERROR: {vault.data_dir} holds vault files but no master.key.")
        print("Restore master.key or move the files away first.")
        pause()
        return vault
    pw = ask_new_master_password()
    print("\nInitializing...")
    try:
        vault.setup_master_password(pw)
        print(f"\n✓ Vault created in {vault.data_dir}")
    except VaultError as e:
        print(f"ERROR: {e}")
    pause()
    return vault

def cmd_list(vault):
    clear_screen()
    print("=== Sections ===\n")
    if not require_unlocked(vault):
        return
    if not vault.sections:
        print("No sections.")
    for section in vault.sections:
        print(f"[{section.name}]")
        if not section.accounts:
            print("    (empty)")
        for account in section.accounts:
            print(f"    {account.type:<22}  {account.identifier}")
    pause()

def cmd_add_section(vault):
    clear_screen()
    print("=== Add Section ===\n")
    if not require_unlocked(vault):
        return
    name = input("Section name: ").strip()
    if not name:
        print("Cancelled.")
    else:
        try:
            vault.add_section(name)
            print(f"\n✓ Section '{name}' added.")
        except (VaultError, ValueError) as e:
            print(f"ERROR: {e}")
    pause()

def cmd_remove_section(vault):
    clear_screen()
    print("=== Remove Section ===\n")
    if not require_unlocked(vault):
        return
    section = pick_section(vault)
    if section:
        print(f"\nAbout to delete '{section.name}' and its {len(section.accounts)} account(s).")
        if input("Type 'yes' to confirm: ").strip().lower() == 'yes':
            try:
                vault.remove_section(section)
                print("\n✓ Section deleted.")
            except VaultError as e:
                print(f"ERROR: {e}")
        else:
            print("Cancelled.")
    pause()

def cmd_add_account(vault, generated=False):
    clear_screen()
    print(f"=== Add Account ({'Generated' if generated else 'Manual'}) ===\n")
    if not require_unlocked(vault):
        return
    section = pick_section(vault)
    if not section:
        pause()
        return
    account_type = input("\nType (e.g. Gmail, Steam): ").strip()
    identifier = input("Email / username: ").strip()
    if not account_type or not identifier:
        print("Type and email are required.")
        pause()
        return
    if generated:
        try:
            length = int(input("Password length [16]: ").strip() or 16)
        except ValueError:
            length = 16
        secret = crypto.generate_password(max(length, crypto.MIN_GENERATED_LENGTH))
        print(f"\nGenerated: {secret}")
    else:
        secret = getpass.getpass("Password: ")
        if not secret:
            print("Cancelled.")
            pause()
            return
    try:
        vault.add_account(section, account_type, identifier, secret)
        print(f"\n✓ Added to '{section.name}'.")
    except VaultError as e:
        print(f"ERROR: {e}")
    pause()

def cmd_view_account(vault):
    clear_screen()
    print("=== View Account ===\n")
    if not require_unlocked(vault):
        return
    section = pick_section(vault)
    account = pick_account(section) if section else None
    if not account:
        pause()
        return
    print(f"\n  Section: {section.name}")
    print(f"  Type: {account.type}")
    print(f"  Email: {account.identifier}")

    print("\nOptions:")
    print("  1) Show password and history")
    print("  2) Copy to clipboard (without showing)")
    print("  0) Cancel")
    choice = input("\n> ").strip()
    if choice == '1':
        print(f"\n  Password: {account.secret}")
        print("\n  History:")
        for entry in account.history:
            print(f"    {entry.timestamp}  {entry.secret}")
    elif choice == '2':
        if copy_to_clipboard(account.secret):
            print("\n✓ Copied to clipboard!")
    else:
        print("Cancelled.")
    pause()

def cmd_edit_account(vault):
    clear_screen()
    print("=== Edit Account ===\n")
    if not require_unlocked(vault):
        return
    section = pick_section(vault)
    account = pick_account(section) if section else None
    if not account:
        pause()
        return
    print("\nLeave a field empty to keep its current value.")
    account_type = input(f"Type [{account.type}]: ").strip() or account.type
    identifier = input(f"Email [{account.identifier}]: ").strip() or account.identifier
    secret = getpass.getpass("New password (empty = keep): ") or account.secret
    try:
        before = len(account.history)
        vault.update_account(account, account_type, identifier, secret)
        changed = len(account.history) > before
        print(f"\n✓ Saved{' (password changed, added to history)' if changed else ''}.")
    except VaultError as e:
        print(f"ERROR: {e}")
    pause()

def cmd_remove_account(vault):
    clear_screen()
    print("=== Remove Account ===\n")
    if not require_unlocked(vault):
        return
    section = pick_section(vault)
    account = pick_account(section) if section else None
    if account:
        print(f"\nAbout to delete {account.type} ({account.identifier}) from '{section.name}'.")
        if input("Type 'yes' to confirm: ").strip().lower() == 'yes':
            try:
                vault.remove_account(section, account)
                print("\n✓ Account deleted.")
            except VaultError as e:
                print(f"ERROR: {e}")
        else:
            print("Cancelled.")
    pause()

def cmd_import(vault):
    clear_screen()
    print("=== Import CSV ===\n")
    if not require_unlocked(vault):
        return
    path = input("CSV file: ").strip()
    if not path:
        print("Cancelled.")
    else:
        try:
            records = csv_io.read_csv(path)
            if not records:
                print("No records found in CSV file.")
            else:
                count = csv_io.import_records(vault, records)
                print(f"\n✓ Imported {count} records.")
        except (OSError, UnicodeError, VaultError) as e:
            print(f"ERROR: Import failed: {e}")
    pause()

def cmd_export(vault):
    clear_screen()
    print("=== Export CSV ===\n")
    if not require_unlocked(vault):
        return
    if not vault.sections:
        print("No data to export.")
        pause()
        return
    print("WARNING: the CSV file will contain your passwords in plain text.")
    default = csv_io.default_export_name()
    path = input(f"Output file [{default}]: ").strip() or default
    try:
        count = csv_io.export_csv(vault, path)
        print(f"\n✓ Exported {count} accounts to {path}")
    except OSError as e:
        print(f"ERROR: Export failed: {e}")
    pause()

def cmd_settings(vault):
    clear_screen()
    print("=== Settings ===\n")
    s = vault.settings
    print(f"  Theme: {s.theme}")
    print(f"  Music enabled: {s.music_enabled}")
    print(f"  Music playing: {s.music_playing}")
    print(f"  Volume: {s.volume}")
    print("\nLeave a field empty to keep its current value.")
    theme = input(f"Theme [{s.theme}]: ").strip() or s.theme
    music = input(f"Music enabled? [{'Y/n' if s.music_enabled else 'y/N'}]: ").strip().lower()
    volume = input(f"Volume 0-100 [{s.volume}]: ").strip()
    changes = {"theme": theme}
    if music:
        changes["music_enabled"] = music in ('y', 'yes')
    if volume:
        changes["volume"] = volume
    try:
        vault.update_settings(**changes)
        print("\n✓ Settings saved.")
    except VaultError as e:
        print(f"ERROR: {e}")
    pause()

def cmd_recovery_create(vault):
    clear_screen()
    print("=== Create Recovery Kit ===\n")
    if not require_unlocked(vault):
        return
    try:
        k = int(input("Threshold [3]: ").strip() or 3)
        n = int(input("Total shares [5]: ").strip() or 5)
    except ValueError:
        k, n = 3, 5
    out = input("Output file [recovery_kit.txt]: ").strip() or "recovery_kit.txt"
    try:
        shares = vault.create_recovery_kit(k, n)
        with open(out, 'w', encoding='utf-8') as f:
            f.write(format_recovery_kit(shares, k))
        print(f"\n✓ Saved to: {out}")
    except (ValueError, OSError, VaultError) as e:
        print(f"ERROR: {e}")
    pause()

def cmd_restore_key(vault):
    """Rebuild secret.key from k-of-n recovery shares."""
    clear_screen()
    print("=== Restore Vault Key ===\n")
    print(f"Vault: {vault.data_dir}\n")
    print("Enter recovery shares (one per line).")
    print("Press Enter on empty line when done.\n")

    shares = []
    while True:
        share = input(f"Share {len(shares) + 1} (or press Enter to finish): ").strip()
        if not share:
            break
        shares.append(share)
        print(f"✓ Share {len(shares)} accepted ({len(share.split())} words)\n")

    if len(shares) < 2:
        print("\nERROR: Need at least 2 shares")
        pause()
        return

    password = getpass.getpass("Master password: ")
    try:
        vault.restore_vault_key(password, shares)
        print("\n✓ secret.key restored and vault unlocked.")
    except VaultError as e:
        print(f"\nERROR: Restore failed: {e}")
    pause()

def cmd_lock(vault):
    clear_screen()
    print("=== Lock Vault ===\n")
    if vault.is_unlocked:
        vault.lock()
        print("✓ Locked.")
    else:
        print("Not open.")
    pause()

def print_menu(vault):
    print("PassVault - Interactive Menu")
    print("=" * 40)
    print(f"Vault: {vault.data_dir}")
    print(f"Status: {vault.state.value.upper()}")
    print("\n 1) Set up vault")
    print(" 2) Unlock vault")
    print(" 3) List sections")
    print(" 4) Add section")
    print(" 5) Remove section")
    print(" 6) Add account (manual)")
    print(" 7) Add account (generated)")
    print(" 8) View account / copy password")
    print(" 9) Edit account")
    print("10) Remove account")
    print("11) Import CSV")
    print("12) Export CSV")
    print("13) Settings")
    print("14) Create recovery kit")
    print("15) Restore vault key")
    print("16) Change vault directory")
    print("17) Lock vault")
    print(" 0) Exit")

def main_menu(vault_dir=None):
    vault = Vault(vault_dir or config.DEFAULT_VAULT_DIR)
    commands = {
        '3': cmd_list,
        '4': cmd_add_section,
        '5': cmd_remove_section,
        '6': cmd_add_account,
        '7': lambda v: cmd_add_account(v, generated=True),
        '8': cmd_view_account,
        '9': cmd_edit_account,
        '10': cmd_remove_account,
        '11': cmd_import,
        '12': cmd_export,
        '13': cmd_settings,
        '14': cmd_recovery_create,
        '15': cmd_restore_key,
        '17': cmd_lock,
    }
    while True:
        clear_screen()
        print_menu(vault)
        c = input("\n> ").strip()
        if c == '1':
            vault = cmd_setup(vault)
        elif c == '2':
            if vault.is_unlocked:
                print("Already unlocked.")
                pause()
            else:
                unlock_flow(vault)
        elif c in commands:
            commands[c](vault)
        elif c == '16':
            vault.lock()
            vault = Vault(choose_vault_dir(vault.data_dir))
            pause()
        elif c == '0':
            vault.lock()
            print("\nGoodbye!")
            break

def main():
    config.configure_logging()
    try:
        main_menu()
    except KeyboardInterrupt:
        print("\nExiting...")

if __name__ == "__main__":
    main()
