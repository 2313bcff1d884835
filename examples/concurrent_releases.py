#!/usr/bin/env python3
"""
Example: Racing release calls against the same milestone
"""

import threading

from milestone_vault import MilestoneVaultProgram, Keypair
from milestone_vault.errors import EscrowError


def main():
    print("=== Concurrent Release Test ===")
    print()

    program = MilestoneVaultProgram()
    funder = Keypair()
    validators = [Keypair() for _ in range(3)]

    program.token_ledger.open_account("funder", funder.identity)
    program.token_ledger.open_account("recipient", "recipient-owner")
    program.token_ledger.mint("funder", 1000)

    vault = program.initialize_vault(funder.identity, 1000, 1, "Race", recipient="recipient")
    program.fund_vault(funder.identity, vault.vault_id, "funder")
    program.submit_proof(funder.identity, vault.vault_id, 0, "sha256:done")
    for v in validators:
        program.approve_milestone(v.identity, vault.vault_id, 0)

    results = []

    def attempt(n):
        try:
            program.release_funds(funder.identity, vault.vault_id, 0, 600)
            results.append((n, "released"))
        except EscrowError as e:
            results.append((n, e.code))

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for n, outcome in sorted(results):
        print(f"   Caller {n}: {outcome}")

    vault = program.get_vault(vault.vault_id)
    print()
    print(f"💰 Released: {vault.released_amount} (expected 600)")
    print(f"💰 Recipient balance: {program.token_ledger.balance_of('recipient')}")


if __name__ == "__main__":
    main()
