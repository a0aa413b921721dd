"""
Shared building blocks for the economy engines.

Import from the submodules directly:

- base_service.BaseService
- exceptions: domain exception hierarchy
- constants: fixed economy rules
- result.OperationResult
- random_source: injectable randomness
- single_flight.SingleFlightGuard
"""
