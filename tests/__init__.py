"""
Test Suite for ldap-smoke

Test Structure:
- unit/test_config.py: Environment-backed configuration
- unit/test_execution.py: Subprocess execution, timeouts and truncation
- unit/test_runtime.py: Container runtime detection order
- unit/test_client.py: ldapsearch invocation and output classification
- unit/test_probes.py: Individual probes and their outcomes
- unit/test_suite.py: The fixed test sequence
- unit/test_report.py: Streaming report output
- unit/test_interactive.py: Interactive query mode
- unit/test_cli.py: Command line dispatch and exit codes
- unit/test_fixtures.py: YAML fixture loading and validation

Running Tests:
    pytest                    # Run all tests
    pytest --cov=ldap_smoke   # With coverage report
"""
