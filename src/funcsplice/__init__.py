"""funcsplice: extract, edit and safely re-splice shell functions."""
