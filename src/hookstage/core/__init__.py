"""Core logic for hookstage: configuration, hook scheduling and tool invocation."""
