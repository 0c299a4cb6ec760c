"""Virtual filesystem tree construction."""