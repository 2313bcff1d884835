#!/usr/bin/env python3
"""
Example: Creating a milestone vault with designated roles
"""

from milestone_vault import MilestoneVaultProgram, ReleaseRules, Keypair


def main():
    print("=== Creating Milestone Vault ===")
    print()

    # Generate keys for the participants
    print("🔑 Generating keys for vault participants...")
    participants = {}
    for name in ["Funder", "Builder", "Inspector A", "Inspector B", "Inspector C"]:
        private_hex, identity = Keypair.generate_key_pair()
        participants[name] = identity
        print(f"   {name}: {identity[:16]}...")

    print()

    rules = ReleaseRules.strict()
    print("📋 Release Rules:")
    print(f"   Quorum threshold: {rules.quorum_threshold}")
    print(f"   Approval cap: {rules.max_approvals}")
    print(f"   Budget cap enforced: {rules.enforce_budget_cap}")
    print(f"   Approvals after release: {rules.allow_approval_after_release}")
    print()

    program = MilestoneVaultProgram(rules=rules)
    program.token_ledger.open_account("builder-usdc", participants["Builder"])

    vault = program.initialize_vault(
        participants["Funder"],
        total_amount=250_000,
        milestone_count=5,
        name="Rural Clinic Expansion",
        recipient="builder-usdc",
        validators=[participants[n] for n in ("Inspector A", "Inspector B", "Inspector C")],
        proposers=[participants["Builder"]]
    )

    print("🏗️  Vault Created Successfully!")
    print(f"   Vault ID: {vault.vault_id}")
    print(f"   Budget: {vault.total_amount:,}")
    print(f"   Milestones: {vault.milestone_count}")
    print(f"   Validators: {len(vault.validators)}")
    print(f"   Commitment Hash: {vault.commitment_hash()}")
    print()

    print("✅ Milestone vault setup complete!")
    print("   - Only the builder may submit proofs")
    print("   - Only the three inspectors may approve")
    print("   - Funds can only flow to the builder's account")


if __name__ == "__main__":
    main()
