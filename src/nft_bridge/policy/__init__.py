"""Pure marketplace policies: payment options and ownership."""
