"""Example programs that drive tool-calling models against real data stores."""
