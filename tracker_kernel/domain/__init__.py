"""Pure domain layer: DTOs, clock, goal effect rules, calendar windows."""
