"""ShakeWatch - earthquake feed monitoring and push alerts."""
