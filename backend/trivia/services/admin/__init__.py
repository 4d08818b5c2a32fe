"""Administrator-side content management: settings, question bank, resets."""
