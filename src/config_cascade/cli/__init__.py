"""Interface de linha de comando do Config Cascade (`config-cascade`)."""
