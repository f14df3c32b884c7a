"""Vote API: validate vote submissions and publish them to the message bus."""
