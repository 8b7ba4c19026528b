"""Analysis components of the reputation analyzer."""
