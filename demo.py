#!/usr/bin/env python3
"""
Complete demo of the Milestone Vault system
"""

from milestone_vault import MilestoneVaultProgram, Keypair, ProofArtifact
from milestone_vault.errors import EscrowError


def main():
    print("=" * 60)
    print("🏦 MILESTONE VAULT - COMPLETE DEMO")
    print("=" * 60)
    print()

    program = MilestoneVaultProgram()
    tokens = program.token_ledger

    # Step 1: Setup
    print("🔧 STEP 1: Setting up participants")
    print("-" * 40)

    funder = Keypair()
    builder = Keypair()
    validators = [Keypair() for _ in range(4)]

    tokens.open_account("funder-usdc", funder.identity)
    tokens.open_account("builder-usdc", builder.identity)
    tokens.mint("funder-usdc", 1000)

    print(f"✅ Funder:    {funder.identity[:16]}... (1,000 USDC)")
    print(f"✅ Builder:   {builder.identity[:16]}...")
    for i, validator in enumerate(validators):
        print(f"✅ Validator {i + 1}: {validator.identity[:16]}...")
    print()

    # Step 2: Create and fund the vault
    print("🏗️  STEP 2: Creating milestone vault")
    print("-" * 40)

    vault = program.initialize_vault(
        funder.identity,
        total_amount=1000,
        milestone_count=2,
        name="Community Well Project",
        recipient="builder-usdc",
        description="Borehole and hand pump for the village school",
        category="Infrastructure",
        location="Kaduna, Nigeria",
        milestones=[
            {"description": "Drill and case the borehole", "amount": 400},
            {"description": "Install pump and platform", "amount": 600},
        ]
    )
    program.fund_vault(funder.identity, vault.vault_id, "funder-usdc")

    print(f"✅ Vault ID: {vault.vault_id}")
    print(f"✅ Budget: {vault.total_amount:,} USDC across {vault.milestone_count} milestones")
    for i, plan in enumerate(vault.milestone_plans):
        print(f"   Milestone {i}: {plan.description} ({plan.amount:,} USDC planned)")
    print(f"✅ Custody balance: {tokens.balance_of(vault.custodial_account):,} USDC")
    print(f"✅ Quorum: {program.rules.quorum_threshold} distinct validator approvals")
    print()

    # Step 3: Proof and approvals
    print("📎 STEP 3: Submitting proof for milestone 0")
    print("-" * 40)

    artifact = ProofArtifact(
        content=b"photo of completed well foundation",
        media_type="image/jpeg",
        metadata={"gps": "9.0820,8.6753"}
    )
    program.submit_proof(builder.identity, vault.vault_id, 0, artifact.reference, confidence_score=94)
    print(f"✅ Proof: {artifact.reference[:32]}...")

    for i, validator in enumerate(validators[:3]):
        milestone = program.approve_milestone(validator.identity, vault.vault_id, 0)
        print(f"✅ Validator {i + 1} approved ({milestone.approval_count}/{program.rules.quorum_threshold})")

    milestone = program.approve_milestone(validators[0].identity, vault.vault_id, 0)
    print(f"✅ Duplicate approval ignored ({milestone.approval_count} distinct)")
    print()

    # Step 4: Release
    print("💰 STEP 4: Releasing funds")
    print("-" * 40)

    event = program.release_funds(builder.identity, vault.vault_id, 0, 400)
    vault = program.get_vault(vault.vault_id)
    print(f"   ✅ SUCCESS: Released {event.amount} USDC for milestone {event.milestone_index}")
    print(f"   💰 Released so far: {vault.released_amount:,} / {vault.total_amount:,}")
    print(f"   💰 Builder balance: {tokens.balance_of('builder-usdc'):,}")
    print()

    print("Test: Releasing milestone 0 a second time")
    try:
        program.release_funds(builder.identity, vault.vault_id, 0, 400)
        print("   ❌ UNEXPECTED: Should have failed")
    except EscrowError as e:
        print(f"   ✅ EXPECTED FAILURE ({e.code}): {e}")
    print()

    print("Test: Releasing milestone 1 beyond the remaining budget")
    program.submit_proof(builder.identity, vault.vault_id, 1, "sha256:phase-two")
    for validator in validators[1:]:
        program.approve_milestone(validator.identity, vault.vault_id, 1)
    try:
        program.release_funds(builder.identity, vault.vault_id, 1, 700)
        print("   ❌ UNEXPECTED: Should have failed")
    except EscrowError as e:
        print(f"   ✅ EXPECTED FAILURE ({e.code}): {e}")
    print()

    # Step 5: Summary
    print("📊 STEP 5: Vault summary")
    print("-" * 40)

    summary = program.vault_summary(vault.vault_id)
    for m in summary['milestones']:
        print(f"   Milestone {m['index']}: {m['status']} ({len(m['approvals'])} approvals)")
    print(f"   Remaining budget: {summary['remaining_amount']:,}")
    print(f"   Events emitted: {len(program.emitter.history())}")
    print()
    print("=" * 60)
    print("🎉 DEMO COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
