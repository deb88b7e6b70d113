"""HomeKit accessory history with Eve history protocol support."""
