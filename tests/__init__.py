"""queryspine test suite."""
