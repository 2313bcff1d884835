import unittest

from milestone_vault.config import MAX_AMOUNT
from milestone_vault.rules import ReleaseRules


class TestReleaseRules(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.default_rules = ReleaseRules.default()
        self.strict_rules = ReleaseRules.strict()

    def test_default_rules(self):
        """Test default rule parameters"""
        rules = self.default_rules

        self.assertEqual(rules.quorum_threshold, 3)
        self.assertEqual(rules.max_approvals, 16)
        self.assertTrue(rules.enforce_budget_cap)
        self.assertEqual(rules.max_amount, MAX_AMOUNT)
        self.assertTrue(rules.allow_approval_after_release)

    def test_strict_rules(self):
        """Test strict rule parameters"""
        rules = self.strict_rules

        self.assertEqual(rules.quorum_threshold, 3)
        self.assertFalse(rules.allow_approval_after_release)

    def test_quorum(self):
        """Test quorum threshold boundary"""
        rules = self.default_rules

        self.assertFalse(rules.has_quorum(2))
        self.assertTrue(rules.has_quorum(3))
        self.assertTrue(rules.has_quorum(4))
        self.assertEqual(rules.approvals_missing(1), 2)
        self.assertEqual(rules.approvals_missing(5), 0)

    def test_invalid_rules(self):
        """Test rule construction validation"""
        with self.assertRaises(ValueError):
            ReleaseRules(0, 16, True, MAX_AMOUNT, True)

        # Cap below the threshold could never reach quorum
        with self.assertRaises(ValueError):
            ReleaseRules(3, 2, True, MAX_AMOUNT, True)

    def test_amount_validation(self):
        """Test unsigned amount range"""
        rules = self.default_rules

        self.assertTrue(rules.is_valid_amount(0))
        self.assertTrue(rules.is_valid_amount(MAX_AMOUNT))
        self.assertFalse(rules.is_valid_amount(MAX_AMOUNT + 1))
        self.assertFalse(rules.is_valid_amount(-1))
        self.assertFalse(rules.is_valid_amount(1.5))
        self.assertFalse(rules.is_valid_amount(True))

    def test_accounting_validation(self):
        """Test release accounting against budget and range"""
        rules = self.default_rules

        is_valid, reason = rules.validate_accounting(400, 600, 1000)
        self.assertTrue(is_valid)

        is_valid, reason = rules.validate_accounting(400, 700, 1000)
        self.assertFalse(is_valid)
        self.assertIn("exceeds remaining budget 600", reason)

        is_valid, reason = rules.validate_accounting(MAX_AMOUNT, 1, MAX_AMOUNT)
        self.assertFalse(is_valid)
        self.assertIn("overflows", reason)

    def test_budget_cap_disabled(self):
        """Test that disabling the cap still guards the accounting range"""
        rules = ReleaseRules(3, 16, False, MAX_AMOUNT, True)

        is_valid, _ = rules.validate_accounting(400, 700, 1000)
        self.assertTrue(is_valid)

        is_valid, _ = rules.validate_accounting(MAX_AMOUNT - 1, 2, 1000)
        self.assertFalse(is_valid)


if __name__ == '__main__':
    unittest.main()
