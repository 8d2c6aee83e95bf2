"""Keep the Little Snitch profile in line with the VPN connection state."""
