"""Build recipe, macro, tuning and script parsing."""