"""Cross-cutting helpers shared by the CLI and the relay."""
