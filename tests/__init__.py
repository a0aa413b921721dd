"""
Pet Economy Test Suite
======================

Test Organization
-----------------
- tests/unit/          : Fast unit tests against in-memory fakes
- tests/unit/domain/   : Pure domain model tests
- tests/fakes.py       : InMemoryLedger and ScriptedRandomSource

Testing Philosophy
------------------
- Engines are tested through their public operations and OperationResult
- Randomness is scripted or seeded, never left to chance
- Follow AAA pattern: Arrange, Act, Assert
"""
