"""
dirauth Test Suite

Test organization:
- unit/: Unit tests for individual modules
- property/: Property-based tests using Hypothesis
- integration/: Live tests against ldap.forumsys.com (skipped when unreachable)
- fakes.py: In-memory directory used in place of a real LDAP server
"""
