"""Mixer program core: state, root history, instructions, nullifiers, verification."""
