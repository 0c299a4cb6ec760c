"""Small terminal helpers for prompts and column output."""