"""
PassVault - Recovery Module (Shamir Secret Sharing)

Backs up the vault key (secret.key) as k-of-n SLIP-0039 mnemonic shares:
- Any k shares reconstruct the key
- Fewer than k shares reveal NOTHING about it

Use case: secret.key was deleted or damaged. The master password alone cannot
rebuild it, because the vault key is random and not derived from the password.
"""

from typing import List, Sequence

from shamir_mnemonic import shamir
from shamir_mnemonic.utils import MnemonicError

from .errors import RecoveryError

MAX_SHARES = 16


def generate_recovery_shares(vault_key: bytes, k: int, n: int) -> List[str]:
    """
    Split the vault key into n mnemonic shares (need k to recover).

    Args:
        vault_key: 32-byte key from secret.key
        k: Threshold (minimum shares needed)
        n: Total number of shares to create

    Returns:
        n mnemonics, each one a space-separated word string
    """
    if k > n:
        raise ValueError(f"k ({k}) cannot be greater than n ({n})")

    if k < 2:
        raise ValueError("k must be at least 2")

    if n > MAX_SHARES:
        raise ValueError(f"n cannot exceed {MAX_SHARES} (SLIP-0039 limit)")

    # One group, k-of-n members
    groups = shamir.generate_mnemonics(
        group_threshold=1,
        groups=[(k, n)],
        master_secret=vault_key,
    )
    return groups[0]


def combine_recovery_shares(shares: Sequence[str]) -> bytes:
    """
    Reconstruct the vault key from at least k shares.

    Raises:
        RecoveryError: invalid, mismatched or insufficient shares
    """
    normalized = [" ".join(share.split()) for share in shares if share.strip()]
    if not normalized:
        raise RecoveryError("No recovery shares given")
    try:
        return shamir.combine_mnemonics(normalized)
    except (MnemonicError, KeyError, ValueError) as e:
        raise RecoveryError(f"Failed to combine shares: {e}") from e


def format_recovery_kit(shares: Sequence[str], k: int) -> str:
    """Printable recovery kit text."""
    output = []
    output.append("=" * 70)
    output.append("PassVault RECOVERY KIT")
    output.append("=" * 70)
    output.append(f"\nThreshold: Need {k} of {len(shares)} shares to recover")
    output.append("\nIMPORTANT:")
    output.append("- Print this document and store shares in separate secure locations")
    output.append(f"- Any {k} shares can restore secret.key if it is lost or damaged")
    output.append("- You still need your master password to restore")
    output.append("- NEVER store all shares together!\n")
    output.append("=" * 70)

    for i, share in enumerate(shares, 1):
        output.append(f"\n\nSHARE {i} of {len(shares)}")
        output.append("-" * 70)
        output.append(share)
        output.append("\n" + "-" * 70)

    output.append("\n\nTo restore:")
    output.append("1. Run: passvault, then choose 'Restore vault key'")
    output.append(f"2. Enter any {k} shares when prompted")
    output.append("3. Enter your master password\n")

    return "\n".join(output)
